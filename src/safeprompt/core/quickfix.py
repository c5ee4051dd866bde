"""
Quick fixes for SafePrompt diagnostics.

* ``hardcoded_secret``: swap the literal for an environment variable lookup
  and ask the host to rescan.
* ``enhanced_prompt``: insert the enhanced prompt as a comment below the
  prompt line.
"""

import re
from typing import Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from .detectors import SECRET_RE
from .diagnostics import Diagnostic, DiagnosticCode, Range
from .documents import Document, Position, TextEdit


RUN_SCAN_COMMAND = 'SafePrompt.runScan'

SECRET_KIND_RE = re.compile(r"(api[_-]?key|apikey|secret|token)", re.IGNORECASE)
QUOTED_LITERAL_RE = re.compile(r"(['\"`])([^'\"`]+)\1")
ASSIGNMENT_RE = re.compile(r"[=:]")
ENV_NAME_SANITIZE_RE = re.compile(r"[^A-Z0-9_]")
CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
MESSAGE_PREFIX_RE = re.compile(r"^\[NVIDIA\]\s*")
LEGACY_PREFIX_RE = re.compile(r"^\[Enhanced\]\s*")

DEFAULT_ENV_NAME = 'SECRET'


@dataclass
class CodeAction:
    """A user-triggerable edit attached to diagnostics."""
    title: str
    edits: List[TextEdit]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    command: Optional[str] = None
    kind: str = 'quickfix'

    def to_dict(self):
        return {
            "title": self.title,
            "kind": self.kind,
            "edits": [edit.to_dict() for edit in self.edits],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "command": self.command,
        }


def _env_name_for_kind(kind: str) -> str:
    token = CAMEL_BOUNDARY_RE.sub('_', kind)
    return ENV_NAME_SANITIZE_RE.sub('_', token.upper())


def env_var_name(line: str, start: int = 0) -> str:
    """
    Environment variable name derived from the secret kind on a line.

    The keyword of the assignment the secret rule matches wins over any
    earlier mention of a secret kind.
    """
    match = SECRET_RE.search(line, start) or SECRET_KIND_RE.search(line, start)
    if not match:
        return DEFAULT_ENV_NAME
    return _env_name_for_kind(match.group(1))


def env_reference(name: str, language_id: str) -> str:
    """Source expression reading ``name`` from the environment."""
    if language_id == 'python':
        return f'os.environ.get("{name}")'
    return f'process.env.{name}'


def hardcoded_secret_fix(document: Document, diagnostic: Diagnostic) -> CodeAction:
    """Replace the quoted literal (or the right-hand side) with an env lookup."""
    line_index = diagnostic.range.start_line
    line = document.line_at(line_index)
    start_col = diagnostic.range.start_col
    reference = env_reference(env_var_name(line, start_col), document.language_id)

    secret = SECRET_RE.search(line, start_col)
    quoted = QUOTED_LITERAL_RE.search(line, start_col)
    if secret:
        # Value group sits between one opening and one closing quote
        edit = TextEdit.replace(
            Range.for_line(line_index, secret.start(2) - 1, secret.end(2) + 1),
            reference,
        )
    elif quoted:
        edit = TextEdit.replace(
            Range.for_line(line_index, quoted.start(), quoted.end()),
            reference,
        )
    else:
        assignment = ASSIGNMENT_RE.search(line, start_col)
        start = assignment.end() if assignment else 0
        edit = TextEdit.replace(
            Range.for_line(line_index, start, len(line)),
            f" {reference}" if assignment else reference,
        )

    title = ('Replace literal with os.environ reference' if document.language_id == 'python'
             else 'Replace literal with process.env reference')
    return CodeAction(
        title=title,
        edits=[edit],
        diagnostics=[diagnostic],
        command=RUN_SCAN_COMMAND,
    )


def strip_message_prefix(message: str) -> str:
    return LEGACY_PREFIX_RE.sub('', MESSAGE_PREFIX_RE.sub('', message))


def enhanced_prompt_fix(document: Document, diagnostic: Diagnostic) -> CodeAction:
    """Insert ``# ENHANCED_PROMPT: ...`` on a new line below the prompt."""
    text = f"# ENHANCED_PROMPT: {strip_message_prefix(diagnostic.message)}"
    target_line = diagnostic.range.end_line + 1

    if target_line < document.line_count:
        edit = TextEdit.insert(Position(target_line, 0), f"{text}\n")
    else:
        # Last line without trailing newline: append after it
        last = document.line_count - 1
        edit = TextEdit.insert(Position(last, len(document.line_at(last))), f"\n{text}")

    return CodeAction(
        title='Insert enhanced prompt below',
        edits=[edit],
        diagnostics=[diagnostic],
    )


FIX_PROVIDERS: Dict[DiagnosticCode, Optional[Callable[[Document, Diagnostic], CodeAction]]] = {
    DiagnosticCode.HARDCODED_SECRET: hardcoded_secret_fix,
    DiagnosticCode.MISSING_AUTH: None,
    DiagnosticCode.ENHANCED_PROMPT_LOADING: None,
    DiagnosticCode.ENHANCED_PROMPT: enhanced_prompt_fix,
    DiagnosticCode.ENHANCED_PROMPT_FAILED: None,
}


def provide_code_actions(document: Document, diagnostics: Sequence[Diagnostic]) -> List[CodeAction]:
    """Return the quick fixes available for the given diagnostics."""
    actions = []
    for diagnostic in diagnostics:
        provider = FIX_PROVIDERS[diagnostic.code]
        if provider is not None:
            actions.append(provider(document, diagnostic))
    return actions
