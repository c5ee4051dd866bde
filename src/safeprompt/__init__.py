"""
SafePrompt

Flags insecure patterns in JavaScript and Python source and turns
``PROMPT:`` comments into security-hardened prompts using a hosted
language model.

Features:
- Regex-based detection of hardcoded secrets and unprotected sensitive functions
- PROMPT: comment extraction and debounced, deduplicated enhancement requests
- Per-document diagnostic store merging enhancement and scan results
- Quick fixes for hardcoded secrets and enhanced prompts
- JSON reports and a REST API for integration

Usage:
    # As a library
    from safeprompt import scan
    diagnostics = scan(source_text)

    # From command line
    python -m safeprompt /path/to/source --enhance

    # As API server
    python -m safeprompt --serve
"""

__version__ = '1.0.0'
__author__ = 'SafePrompt Team'

from .core.detectors import PatternScanner, scan, get_rules
from .core.prompts import extract_prompt, extract_prompts
from .core.diagnostics import Diagnostic, DiagnosticCode, DiagnosticSeverity, Range
from .core.documents import Document, TextEdit, apply_edits
from .core.config import AnalyzerSettings, load_environment
from .core.enhancer import PromptEnhancer, EnhancementError, ConfigurationError
from .core.store import DiagnosticStore, merge_diagnostics
from .core.service import SafePromptService
from .core.scanner import Scanner, ScanConfig, ScanResult
from .core.reporters import ReportGenerator

__all__ = [
    'PatternScanner',
    'scan',
    'get_rules',
    'extract_prompt',
    'extract_prompts',
    'Diagnostic',
    'DiagnosticCode',
    'DiagnosticSeverity',
    'Range',
    'Document',
    'TextEdit',
    'apply_edits',
    'AnalyzerSettings',
    'load_environment',
    'PromptEnhancer',
    'EnhancementError',
    'ConfigurationError',
    'DiagnosticStore',
    'merge_diagnostics',
    'SafePromptService',
    'Scanner',
    'ScanConfig',
    'ScanResult',
    'ReportGenerator',
]
