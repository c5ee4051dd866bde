"""
Detectors module for applying security heuristics to source text.

Detection is line-oriented and regex-based: each rule looks at one physical
line at a time (the authorization rule also peeks at the lines that follow a
function definition). No syntax trees are built.

IMPORTANT: This module is input-source agnostic. It does NOT know whether
the text came from an editor buffer, a file on disk or an API request.
"""

import re
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, asdict

from .diagnostics import Diagnostic, DiagnosticCode, DiagnosticSeverity, Range
from .documents import split_lines


SECRET_RE = re.compile(
    r"(api[_-]?key|apikey|secret|token)\s*[:=]\s*['\"`]([^'\"`]+)['\"`]",
    re.IGNORECASE
)

FUNCTION_DEF_RE = re.compile(
    r"(function\s+([a-zA-Z0-9_]+)\s*\(|"
    r"const\s+([a-zA-Z0-9_]+)\s*=\s*\(.*\)\s*=>|"
    r"def\s+([a-zA-Z0-9_]+)\s*\()",
    re.IGNORECASE
)

SENSITIVE_NAME_RE = re.compile(r"login|auth|getuser|admin", re.IGNORECASE)

AUTH_CHECK_RE = re.compile(r"role|authorize|auth|req\.user|hasRole", re.IGNORECASE)

# Lines searched for an authorization check, including the definition line
AUTH_LOOKAHEAD_LINES = 8

HARDCODED_SECRET_MESSAGE = 'Hardcoded secret detected. Consider using environment variables.'
MISSING_AUTH_MESSAGE = 'Possible missing authorization check in function "{name}".'


@dataclass
class Rule:
    """Metadata describing a detection rule."""
    id: str
    name: str
    description: str
    severity: str
    cwe_id: Optional[str]
    remediation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


RULES: List[Rule] = [
    Rule(
        id=DiagnosticCode.HARDCODED_SECRET.value,
        name='Hardcoded Secret',
        description='An API key, secret or token is assigned a quoted literal.',
        severity=DiagnosticSeverity.WARNING.value,
        cwe_id='CWE-798',
        remediation='Load the value from an environment variable.',
    ),
    Rule(
        id=DiagnosticCode.MISSING_AUTH.value,
        name='Missing Authorization Check',
        description=(
            'A login/auth/admin/getUser function does not mention a role or '
            'authorization check near its definition.'
        ),
        severity=DiagnosticSeverity.WARNING.value,
        cwe_id='CWE-862',
        remediation='Verify the caller is authenticated and holds the required role.',
    ),
]


def get_rules() -> List[Dict[str, Any]]:
    """Return metadata for all detection rules."""
    return [rule.to_dict() for rule in RULES]


class HardcodedSecretDetector:
    """Flags secrets assigned as quoted literals."""

    def detect_line(self, line_index: int, line: str) -> Optional[Diagnostic]:
        # Only the first occurrence on a line is reported
        match = SECRET_RE.search(line)
        if not match:
            return None
        return Diagnostic(
            range=Range.for_line(line_index, match.start(), len(line)),
            message=HARDCODED_SECRET_MESSAGE,
            severity=DiagnosticSeverity.WARNING,
            code=DiagnosticCode.HARDCODED_SECRET,
            fix_intent='replace_with_env_reference',
        )


class MissingAuthDetector:
    """Flags sensitive functions with no authorization keyword nearby."""

    def __init__(self, lookahead: int = AUTH_LOOKAHEAD_LINES):
        self.lookahead = lookahead

    @staticmethod
    def function_name(line: str) -> Optional[str]:
        """Extract the name of a function defined on this line, if any."""
        match = FUNCTION_DEF_RE.search(line)
        if not match:
            return None
        return match.group(2) or match.group(3) or match.group(4) or ''

    def detect_line(self, line_index: int, lines: List[str]) -> Optional[Diagnostic]:
        line = lines[line_index]
        name = self.function_name(line)
        if not name or not SENSITIVE_NAME_RE.search(name):
            return None

        window = lines[line_index:line_index + self.lookahead]
        if any(AUTH_CHECK_RE.search(candidate) for candidate in window):
            return None

        return Diagnostic(
            range=Range.for_line(line_index, 0, len(line)),
            message=MISSING_AUTH_MESSAGE.format(name=name),
            severity=DiagnosticSeverity.WARNING,
            code=DiagnosticCode.MISSING_AUTH,
        )


class PatternScanner:
    """
    Runs every line rule over a text.

    Rules fire independently, so one line may carry both a secret and a
    missing-authorization diagnostic. Results are grouped by rule, in line
    order within each rule.
    """

    def __init__(self):
        self.secret_detector = HardcodedSecretDetector()
        self.auth_detector = MissingAuthDetector()

    def scan(self, text: str) -> List[Diagnostic]:
        lines = split_lines(text)
        diagnostics = []

        for index, line in enumerate(lines):
            diagnostic = self.secret_detector.detect_line(index, line)
            if diagnostic:
                diagnostics.append(diagnostic)

        for index in range(len(lines)):
            diagnostic = self.auth_detector.detect_line(index, lines)
            if diagnostic:
                diagnostics.append(diagnostic)

        return diagnostics


_default_scanner = PatternScanner()


def scan(text: str) -> List[Diagnostic]:
    """Scan document text and return security diagnostics."""
    return _default_scanner.scan(text)
