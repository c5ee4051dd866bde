"""Tests for quick fixes and text edit application."""

import pytest

from safeprompt.core.detectors import scan
from safeprompt.core.diagnostics import DiagnosticCode, Range
from safeprompt.core.documents import Document, Position, TextEdit, apply_edits
from safeprompt.core.quickfix import (
    RUN_SCAN_COMMAND,
    env_var_name,
    hardcoded_secret_fix,
    provide_code_actions,
    strip_message_prefix,
)
from safeprompt.core.store import enhanced_diagnostic, loading_diagnostic


def fix_text(document):
    actions = provide_code_actions(document, scan(document.text))
    return actions, apply_edits(document.text, [e for a in actions for e in a.edits])


def test_api_key_scenario(make_document):
    document = make_document('const apiKey = "sk-12345"')

    actions, fixed = fix_text(document)

    assert len(actions) == 1
    assert fixed == 'const apiKey = process.env.API_KEY'
    assert actions[0].command == RUN_SCAN_COMMAND
    assert scan(fixed) == []


def test_python_uses_os_environ(make_document):
    document = make_document("API_KEY = 'abc'\n", language_id='python', uri='file:///a.py')

    actions, fixed = fix_text(document)

    assert fixed == 'API_KEY = os.environ.get("API_KEY")\n'
    assert actions[0].title == 'Replace literal with os.environ reference'


@pytest.mark.parametrize('line, expected', [
    ('const apiKey = "x"', 'API_KEY'),
    ('api-key: "x"', 'API_KEY'),
    ('my_token = "x"', 'TOKEN'),
    ('clientSecret = "x"', 'SECRET'),
    ('password = "x"', 'SECRET'),
])
def test_env_var_name(line, expected):
    assert env_var_name(line) == expected


def test_unquoted_value_replaces_right_hand_side(make_document):
    document = make_document('token = abc123')
    diagnostic = loading_diagnostic(document, 0)
    action = hardcoded_secret_fix(document, diagnostic)

    assert apply_edits(document.text, action.edits) == 'token = process.env.TOKEN'


def test_only_secret_lines_are_touched(make_document):
    document = make_document('const a = 1;\r\nconst token = "t";\r\nconst b = 2;')

    _, fixed = fix_text(document)

    assert fixed == 'const a = 1;\r\nconst token = process.env.TOKEN;\r\nconst b = 2;'


def test_enhanced_prompt_insert_below(make_document):
    document = make_document('// PROMPT: login\nconst x = 1;')
    diagnostic = enhanced_diagnostic(document, 0, 'login with RBAC')

    actions = provide_code_actions(document, [diagnostic])

    assert len(actions) == 1
    assert apply_edits(document.text, actions[0].edits) == (
        '// PROMPT: login\n# ENHANCED_PROMPT: login with RBAC\nconst x = 1;'
    )


def test_enhanced_prompt_insert_on_last_line(make_document):
    document = make_document('// PROMPT: login')
    diagnostic = enhanced_diagnostic(document, 0, 'login with RBAC')

    action = provide_code_actions(document, [diagnostic])[0]

    assert apply_edits(document.text, action.edits) == (
        '// PROMPT: login\n# ENHANCED_PROMPT: login with RBAC'
    )


def test_no_actions_for_informational_codes(make_document):
    document = make_document('// PROMPT: x\nfunction login(req) {}')
    diagnostics = [loading_diagnostic(document, 0)] + scan(document.text)

    assert [d.code for d in diagnostics] == [
        DiagnosticCode.ENHANCED_PROMPT_LOADING,
        DiagnosticCode.MISSING_AUTH,
    ]
    assert provide_code_actions(document, diagnostics) == []


def test_strip_message_prefix():
    assert strip_message_prefix('[NVIDIA] hello') == 'hello'
    assert strip_message_prefix('[Enhanced] hello') == 'hello'
    assert strip_message_prefix('hello') == 'hello'


class TestApplyEdits:

    def test_insert_and_replace(self):
        text = 'abc\ndef'
        edits = [
            TextEdit.insert(Position(0, 0), '>'),
            TextEdit.replace(Range.for_line(1, 1, 2), 'X'),
        ]
        assert apply_edits(text, edits) == '>abc\ndXf'

    def test_positions_are_clamped(self):
        assert apply_edits('ab', [TextEdit.insert(Position(0, 99), '!')]) == 'ab!'
        assert apply_edits('ab', [TextEdit.insert(Position(5, 0), '!')]) == 'ab!'

    def test_document_lines(self):
        document = Document('file:///x.js', 'javascript', 'a\r\nb\n')
        assert document.lines == ['a', 'b', '']
        assert document.line_at(7) == ''
        assert document.with_text('c').version == 1


def test_fix_targets_flagged_literal_not_first_string(make_document):
    document = make_document('const headers = { mode: "cors", token: "abc123" };')

    actions, fixed = fix_text(document)

    assert len(actions) == 1
    assert fixed == 'const headers = { mode: "cors", token: process.env.TOKEN };'
    assert scan(fixed) == []


def test_env_name_follows_matched_keyword(make_document):
    document = make_document('const secretToken = "abc123"')

    _, fixed = fix_text(document)

    assert fixed == 'const secretToken = process.env.TOKEN'
    assert env_var_name('const secretToken = "abc123"') == 'TOKEN'
