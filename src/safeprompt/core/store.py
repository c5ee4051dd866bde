"""
Diagnostic store and merger.

Enhancement diagnostics live in the document session, at most one per line.
Security diagnostics are never stored: every publish rescans the current
text and concatenates the two lists.
"""

from typing import Callable, List, Optional, Sequence

from .detectors import scan
from .diagnostics import Diagnostic, DiagnosticCode, DiagnosticSeverity, Range
from .documents import Document
from .host import DiagnosticPublisher
from .session import DocumentSession, SessionRegistry


ENHANCED_PREFIX = '[NVIDIA] '
LOADING_MESSAGE = 'Loading enhanced prompt...'
FAILURE_MESSAGE = '[NVIDIA] Failed to generate enhancement: {reason}'


def prompt_line_range(document: Document, line: int) -> Range:
    return Range.for_line(line, 0, max(1, len(document.line_at(line))))


def loading_diagnostic(document: Document, line: int) -> Diagnostic:
    return Diagnostic(
        range=prompt_line_range(document, line),
        message=LOADING_MESSAGE,
        severity=DiagnosticSeverity.INFO,
        code=DiagnosticCode.ENHANCED_PROMPT_LOADING,
    )


def enhanced_diagnostic(document: Document, line: int, text: str) -> Diagnostic:
    return Diagnostic(
        range=prompt_line_range(document, line),
        message=f"{ENHANCED_PREFIX}{text}",
        severity=DiagnosticSeverity.WARNING,
        code=DiagnosticCode.ENHANCED_PROMPT,
        fix_intent='insert_enhanced_prompt',
    )


def failed_diagnostic(document: Document, line: int, reason: str) -> Diagnostic:
    return Diagnostic(
        range=prompt_line_range(document, line),
        message=FAILURE_MESSAGE.format(reason=reason),
        severity=DiagnosticSeverity.WARNING,
        code=DiagnosticCode.ENHANCED_PROMPT_FAILED,
    )


def merge_diagnostics(
    enhanced: Sequence[Diagnostic],
    security: Sequence[Diagnostic]
) -> List[Diagnostic]:
    """
    Concatenate stored enhancement diagnostics with fresh scan diagnostics.

    Raises:
        ValueError: a diagnostic is on the wrong side of the merge
    """
    for diagnostic in enhanced:
        if not diagnostic.code.is_enhancement:
            raise ValueError(f"Scan diagnostic {diagnostic.code.value} cannot be stored")
    for diagnostic in security:
        if diagnostic.code.is_enhancement:
            raise ValueError(f"Enhancement diagnostic {diagnostic.code.value} is not a scan result")
    return list(enhanced) + list(security)


class DiagnosticStore:
    """Per-document enhancement diagnostics plus the publish step."""

    def __init__(
        self,
        registry: SessionRegistry,
        publisher: DiagnosticPublisher,
        scanner: Callable[[str], List[Diagnostic]] = scan
    ):
        self.registry = registry
        self.publisher = publisher
        self.scanner = scanner

    def _session(self, document: Document) -> DocumentSession:
        return self.registry.open(document)

    def upsert_line_diagnostic(
        self,
        document: Document,
        line: int,
        diagnostic: Diagnostic
    ) -> None:
        """Replace whatever enhancement diagnostic is stored for ``line``."""
        session = self._session(document)
        kept = [d for d in session.enhanced_diagnostics if d.line != line]
        kept.append(diagnostic)
        session.enhanced_diagnostics = kept

    def replace_all_for_document(
        self,
        document: Document,
        diagnostics: Sequence[Diagnostic]
    ) -> None:
        """Replace the stored list wholesale, keeping one entry per line."""
        by_line = {}
        for diagnostic in diagnostics:
            by_line[diagnostic.line] = diagnostic
        session = self._session(document)
        session.enhanced_diagnostics = list(by_line.values())
        for line in list(session.resolved_prompts):
            if line not in by_line:
                del session.resolved_prompts[line]

    def stored(self, document: Document) -> List[Diagnostic]:
        session = self.registry.get(document.uri)
        return list(session.enhanced_diagnostics) if session else []

    def merged(self, document: Document, security: Optional[List[Diagnostic]] = None) -> List[Diagnostic]:
        if security is None:
            security = self.scanner(document.text)
        return merge_diagnostics(self.stored(document), security)

    def republish(
        self,
        document: Document,
        security: Optional[List[Diagnostic]] = None
    ) -> List[Diagnostic]:
        """Publish stored enhancement diagnostics with a fresh scan."""
        combined = self.merged(document, security)
        self.publisher.set(document.uri, combined)
        return combined
