"""
Prompt extraction from ``PROMPT:`` comments.

Supports ``// PROMPT: ...`` (JavaScript, JSX) and ``# PROMPT: ...`` (Python).
"""

import re
from typing import List, NamedTuple

from .documents import split_lines


SUPPORTED_LANGUAGES = frozenset({'javascript', 'javascriptreact', 'python'})

PROMPT_RE = re.compile(r'^\s*(?://|#)\s*PROMPT\s*:\s*(.+)$', re.IGNORECASE)


class PromptLine(NamedTuple):
    line: int
    prompt: str


def is_supported_language(language_id: str) -> bool:
    return language_id in SUPPORTED_LANGUAGES


def extract_prompt(line: str):
    """Return the trimmed prompt on a single line, or None."""
    match = PROMPT_RE.match(line)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_prompts(text: str, language_id: str) -> List[PromptLine]:
    """
    Find prompt comments in a document.

    Args:
        text: Document text
        language_id: Host language id of the document

    Returns:
        (line index, prompt text) pairs in line order; empty for
        unsupported languages
    """
    if not is_supported_language(language_id):
        return []

    prompts = []
    for index, line in enumerate(split_lines(text)):
        prompt = extract_prompt(line)
        if prompt:
            prompts.append(PromptLine(index, prompt))
    return prompts
