"""
Diagnostic types shared by the scanner, the enhancement pipeline and the
publishing layer.

Diagnostics are identified by a closed set of codes. Scan codes are
recomputed from the document text on every publish; enhancement codes are
kept per line in the document session.
"""

from enum import Enum
from typing import Dict, Any, List, Optional
from dataclasses import dataclass


DIAGNOSTIC_SOURCE = 'SafePrompt'


class DiagnosticSeverity(Enum):
    """Severity levels reported to the host."""
    INFO = "info"
    WARNING = "warning"


class DiagnosticCode(Enum):
    """Classification tag of a diagnostic."""
    HARDCODED_SECRET = "hardcoded_secret"
    MISSING_AUTH = "missing_auth"
    ENHANCED_PROMPT_LOADING = "enhanced_prompt_loading"
    ENHANCED_PROMPT = "enhanced_prompt"
    ENHANCED_PROMPT_FAILED = "enhanced_prompt_failed"

    @property
    def is_enhancement(self) -> bool:
        return self in ENHANCEMENT_CODES

    @property
    def qualified(self) -> str:
        """Code as shown by the host, e.g. ``SafePrompt.missing_auth``."""
        return f"{DIAGNOSTIC_SOURCE}.{self.value}"


ENHANCEMENT_CODES = frozenset({
    DiagnosticCode.ENHANCED_PROMPT_LOADING,
    DiagnosticCode.ENHANCED_PROMPT,
    DiagnosticCode.ENHANCED_PROMPT_FAILED,
})

SCAN_CODES = frozenset(set(DiagnosticCode) - ENHANCEMENT_CODES)


# Severity level metadata
SEVERITY_METADATA: Dict[DiagnosticSeverity, Dict[str, Any]] = {
    DiagnosticSeverity.WARNING: {
        "priority": 1,
        "color": "\033[93m",  # Yellow
        "description": "Insecure pattern or enhancement result that needs attention.",
    },
    DiagnosticSeverity.INFO: {
        "priority": 2,
        "color": "\033[90m",  # Gray
        "description": "Informational note, e.g. an enhancement still loading.",
    },
}


@dataclass(frozen=True)
class Range:
    """Zero-based, end-exclusive text range."""
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def for_line(cls, line: int, start_col: int, end_col: int) -> 'Range':
        return cls(line, start_col, line, end_col)

    def to_dict(self) -> Dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_col": self.start_col,
            "end_line": self.end_line,
            "end_col": self.end_col,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A reported issue or note anchored to a text range."""
    range: Range
    message: str
    severity: DiagnosticSeverity
    code: DiagnosticCode
    fix_intent: Optional[str] = None
    source: str = DIAGNOSTIC_SOURCE

    @property
    def line(self) -> int:
        return self.range.start_line

    def to_dict(self) -> Dict[str, Any]:
        """Convert diagnostic to dictionary."""
        return {
            "range": self.range.to_dict(),
            "line_number": self.range.start_line + 1,
            "message": self.message,
            "severity": self.severity.value,
            "code": self.code.value,
            "fix_intent": self.fix_intent,
            "source": self.source,
        }


def get_severity_from_string(severity_str: str) -> DiagnosticSeverity:
    """
    Convert a severity string to DiagnosticSeverity.

    Unknown strings map to INFO.
    """
    severity_map = {
        "info": DiagnosticSeverity.INFO,
        "information": DiagnosticSeverity.INFO,
        "warning": DiagnosticSeverity.WARNING,
        "warn": DiagnosticSeverity.WARNING,
    }
    return severity_map.get(severity_str.lower(), DiagnosticSeverity.INFO)


def meets_severity(diagnostic: Dict[str, Any], min_severity: str) -> bool:
    """Check whether a diagnostic dictionary is at least ``min_severity``."""
    level = get_severity_from_string(diagnostic.get("severity", "info"))
    threshold = get_severity_from_string(min_severity)
    return SEVERITY_METADATA[level]["priority"] <= SEVERITY_METADATA[threshold]["priority"]


def get_severity_summary(diagnostics: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize diagnostics by severity and by code.

    Args:
        diagnostics: List of diagnostic dictionaries

    Returns:
        Summary dictionary with counts
    """
    summary = {
        "total": len(diagnostics),
        "by_severity": {level.value: 0 for level in DiagnosticSeverity},
        "by_code": {code.value: 0 for code in DiagnosticCode},
    }

    for diagnostic in diagnostics:
        severity = diagnostic.get("severity", "info").lower()
        if severity in summary["by_severity"]:
            summary["by_severity"][severity] += 1
        code = diagnostic.get("code")
        if code in summary["by_code"]:
            summary["by_code"][code] += 1

    return summary
