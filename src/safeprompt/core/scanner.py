"""
Scanner module - batch scanning of files and directories.

Files are read into Document snapshots, pattern-scanned in parallel and,
when enhancement is enabled, pushed through the same session/scheduler
pipeline an editor host uses, so batch results match what a user would see.
"""

import os
import time
import uuid
import asyncio
import logging
from fnmatch import fnmatch
from typing import Dict, List, Any, Optional, Callable
from pathlib import Path
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor, as_completed

from .utils import (
    get_all_files,
    get_language_from_extension,
    get_relative_path,
    is_supported_file,
    read_file_content,
    write_file_content,
    logger,
)
from .config import AnalyzerSettings
from .detectors import scan
from .diagnostics import Diagnostic, DiagnosticCode, get_severity_summary
from .documents import Document, apply_edits
from .enhancer import PromptEnhancer
from .host import InMemoryDiagnosticCollection
from .quickfix import provide_code_actions
from .reporters import ReportGenerator
from .service import SafePromptService


SCANNER_VERSION = '1.0.0'


@dataclass
class ScanConfig:
    """Configuration options for scanning."""
    max_file_size: int = 5 * 1024 * 1024  # 5 MB
    max_files: int = 10000
    parallel_workers: int = 4
    exclude_patterns: List[str] = field(default_factory=lambda: [
        '**/node_modules/**',
        '**/.git/**',
        '**/dist/**',
        '**/build/**',
        '**/*.min.js',
        '**/*.bundle.js'
    ])
    recursive: bool = True
    enhance_prompts: bool = False


@dataclass
class FileResult:
    """Diagnostics for one scanned file."""
    file_path: str
    language_id: str
    diagnostics: List[Diagnostic]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "language_id": self.language_id,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class ScanResult:
    """Represents the result of a complete scan."""
    success: bool
    scan_id: str
    target_path: str
    scan_time: float
    total_files: int
    files_scanned: int
    files_skipped: int
    total_diagnostics: int
    files: List[Dict[str, Any]]
    severity_summary: Dict[str, Any]
    errors: List[str]
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """Convert scan result to dictionary."""
        return {
            "success": self.success,
            "scan_id": self.scan_id,
            "target_path": self.target_path,
            "scan_time": self.scan_time,
            "total_files": self.total_files,
            "files_scanned": self.files_scanned,
            "files_skipped": self.files_skipped,
            "total_diagnostics": self.total_diagnostics,
            "files": self.files,
            "severity_summary": self.severity_summary,
            "errors": self.errors,
            "metadata": self.metadata
        }

    def all_diagnostics(self) -> List[Dict[str, Any]]:
        """Flatten per-file diagnostics, tagging each with its file."""
        flattened = []
        for file_result in self.files:
            for diagnostic in file_result["diagnostics"]:
                flattened.append({**diagnostic, "file_path": file_result["file_path"]})
        return flattened


def load_document(filepath: str, uri: Optional[str] = None) -> Optional[Document]:
    """Read a supported file into a Document, or None."""
    language_id = get_language_from_extension(filepath)
    if not language_id:
        return None
    content = read_file_content(filepath)
    if content is None:
        return None
    return Document(uri=uri or Path(filepath).absolute().as_uri(), language_id=language_id, text=content)


class Scanner:
    """
    Scans files for insecure patterns and, optionally, enhances prompts.

    Usage:
        scanner = Scanner()
        result = scanner.scan("/path/to/source")
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        settings: Optional[AnalyzerSettings] = None,
        enhancer: Optional[PromptEnhancer] = None
    ):
        self.config = config or ScanConfig()
        self.settings = settings or AnalyzerSettings()
        self.enhancer = enhancer
        self.logger = logging.getLogger('scanner')
        self._progress_callback: Optional[Callable] = None

    def set_progress_callback(self, callback: Callable[[int, int, str], None]):
        """
        Set a callback for progress updates.

        Args:
            callback: Function called with (current, total, message)
        """
        self._progress_callback = callback

    def _report_progress(self, current: int, total: int, message: str):
        if self._progress_callback:
            self._progress_callback(current, total, message)

    def _should_skip_file(self, filepath: str) -> bool:
        """Check if a file should be skipped based on configuration."""
        normalized = filepath.replace(os.sep, '/')
        for pattern in self.config.exclude_patterns:
            if fnmatch(normalized, pattern):
                return True

        try:
            size = os.path.getsize(filepath)
            if size > self.config.max_file_size:
                self.logger.debug(f"Skipping large file: {filepath} ({size} bytes)")
                return True
        except OSError:
            return True

        return False

    def _scan_document(self, document: Document) -> List[Diagnostic]:
        return scan(document.text)

    def _generate_scan_id(self) -> str:
        return f"scan_{uuid.uuid4().hex[:12]}"

    def _collect_files(self, target: Path) -> List[str]:
        if target.is_file():
            return [str(target.absolute())] if is_supported_file(str(target)) else []
        return get_all_files(str(target), recursive=self.config.recursive)

    def fix(self, target_path: str) -> int:
        """Apply hardcoded-secret fixes to every scannable file under a target."""
        target = Path(target_path)
        if not target.exists():
            return 0
        fixed = 0
        for filepath in self._collect_files(target)[:self.config.max_files]:
            if not self._should_skip_file(filepath):
                fixed += fix_hardcoded_secrets(filepath)
        return fixed

    def scan(self, target_path: str, output_path: Optional[str] = None) -> ScanResult:
        """
        Scan a directory or file.

        This is the main entry point for batch scanning. It:
        1. Discovers supported source files in the target
        2. Runs the pattern scanner on each file
        3. Optionally runs prompt enhancement over all documents
        4. Aggregates diagnostics per file

        Args:
            target_path: Path to directory or file to scan
            output_path: Optional path for a JSON report

        Returns:
            ScanResult with all diagnostics and metadata
        """
        start_time = time.time()
        scan_id = self._generate_scan_id()
        errors = []
        files_skipped = 0

        self.logger.info(f"Starting scan {scan_id} on {target_path}")

        target = Path(target_path)
        if not target.exists():
            return ScanResult(
                success=False,
                scan_id=scan_id,
                target_path=target_path,
                scan_time=0,
                total_files=0,
                files_scanned=0,
                files_skipped=0,
                total_diagnostics=0,
                files=[],
                severity_summary={},
                errors=[f"Target path does not exist: {target_path}"],
                metadata={}
            )

        files = self._collect_files(target)
        base_dir = str((target.parent if target.is_file() else target).absolute())
        total_files = len(files)

        if total_files > self.config.max_files:
            self.logger.warning(
                f"File limit exceeded. Scanning first {self.config.max_files} files."
            )
            files = files[:self.config.max_files]

        documents: List[Document] = []
        paths: Dict[str, str] = {}
        for filepath in files:
            if self._should_skip_file(filepath):
                files_skipped += 1
                continue
            document = load_document(filepath)
            if document is None:
                errors.append(f"Could not read file: {filepath}")
                files_skipped += 1
                continue
            documents.append(document)
            paths[document.uri] = filepath

        self.logger.info(f"Scanning {len(documents)} files (skipped {files_skipped})")
        self._report_progress(0, len(documents), "Starting scan...")

        if self.config.enhance_prompts and documents:
            results = self._scan_with_enhancement(documents)
        else:
            results = self._scan_parallel(documents, errors)

        file_results = []
        for document in documents:
            if document.uri not in results:
                continue
            path = get_relative_path(paths[document.uri], base_dir)
            file_results.append(FileResult(path, document.language_id, results[document.uri]).to_dict())

        diagnostics_dicts = [d for f in file_results for d in f["diagnostics"]]
        scan_time = time.time() - start_time

        result = ScanResult(
            success=True,
            scan_id=scan_id,
            target_path=target_path,
            scan_time=round(scan_time, 2),
            total_files=total_files,
            files_scanned=len(file_results),
            files_skipped=files_skipped,
            total_diagnostics=len(diagnostics_dicts),
            files=file_results,
            severity_summary=get_severity_summary(diagnostics_dicts),
            errors=errors,
            metadata={
                "scanner_version": SCANNER_VERSION,
                "config": {
                    "parallel_workers": self.config.parallel_workers,
                    "max_file_size": self.config.max_file_size,
                    "recursive": self.config.recursive,
                    "enhance_prompts": self.config.enhance_prompts,
                }
            }
        )

        self.logger.info(
            f"Scan {scan_id} completed in {scan_time:.2f}s. "
            f"Found {len(diagnostics_dicts)} diagnostics."
        )

        if output_path:
            ReportGenerator().generate_json_report(result.to_dict(), output_path)

        return result

    def _scan_parallel(self, documents: List[Document], errors: List[str]) -> Dict[str, List[Diagnostic]]:
        results = {}
        workers = max(1, self.config.parallel_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_doc = {
                executor.submit(self._scan_document, document): document
                for document in documents
            }
            for i, future in enumerate(as_completed(future_to_doc)):
                document = future_to_doc[future]
                try:
                    results[document.uri] = future.result()
                    self._report_progress(i + 1, len(documents), f"Scanned {document.uri}")
                except Exception as e:
                    errors.append(f"Error scanning {document.uri}: {str(e)}")
        return results

    def _scan_with_enhancement(self, documents: List[Document]) -> Dict[str, List[Diagnostic]]:
        return asyncio.run(self._enhance_documents(documents))

    async def _enhance_documents(self, documents: List[Document]) -> Dict[str, List[Diagnostic]]:
        collection = InMemoryDiagnosticCollection()
        service = SafePromptService(
            publisher=collection,
            enhancer=self.enhancer,
            settings=self.settings,
        )
        try:
            for i, document in enumerate(documents):
                service.run_scan(document)
                self._report_progress(i + 1, len(documents), f"Scanned {document.uri}")
            await service.wait_idle()
            return {document.uri: collection.get(document.uri) for document in documents}
        finally:
            await service.aclose()


def fix_hardcoded_secrets(filepath: str) -> int:
    """
    Apply the hardcoded-secret quick fix to every flagged line of a file.

    Returns:
        Number of lines rewritten
    """
    document = load_document(filepath)
    if document is None:
        return 0

    secrets = [d for d in scan(document.text) if d.code is DiagnosticCode.HARDCODED_SECRET]
    actions = provide_code_actions(document, secrets)
    if not actions:
        return 0

    edits = [edit for action in actions for edit in action.edits]
    if not write_file_content(filepath, apply_edits(document.text, edits)):
        return 0
    logger.info(f"Replaced {len(actions)} hardcoded secret(s) in {filepath}")
    return len(actions)
