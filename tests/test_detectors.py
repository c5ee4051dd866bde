"""Tests for the line-based security pattern scanner."""

import pytest

from safeprompt.core.detectors import (
    HARDCODED_SECRET_MESSAGE,
    MissingAuthDetector,
    get_rules,
    scan,
)
from safeprompt.core.diagnostics import DiagnosticCode, DiagnosticSeverity


def codes(diagnostics):
    return [d.code for d in diagnostics]


class TestHardcodedSecret:

    def test_api_key_assignment_is_flagged(self):
        diagnostics = scan('const apiKey = "sk-12345"')

        assert codes(diagnostics) == [DiagnosticCode.HARDCODED_SECRET]
        diagnostic = diagnostics[0]
        assert diagnostic.severity is DiagnosticSeverity.WARNING
        assert diagnostic.message == HARDCODED_SECRET_MESSAGE
        assert diagnostic.range.start_line == 0
        assert diagnostic.range.start_col == len('const ')
        assert diagnostic.range.end_col == len('const apiKey = "sk-12345"')

    @pytest.mark.parametrize('line', [
        "API_KEY = 'abc123'",
        'token: `ghp_abcdef`',
        'const client_secret="s3cr3t";',
        "api-key = 'x'",
    ])
    def test_secret_kinds(self, line):
        assert codes(scan(line)) == [DiagnosticCode.HARDCODED_SECRET]

    def test_only_first_occurrence_per_line(self):
        diagnostics = scan('token = "a"; secret = "b"')
        assert len(diagnostics) == 1

    def test_environment_reference_is_not_flagged(self):
        assert scan('const apiKey = process.env.API_KEY') == []

    def test_secret_on_later_line(self):
        text = 'import os\n\nSECRET = "hunter2"\n'
        diagnostics = scan(text)
        assert [d.line for d in diagnostics] == [2]


class TestMissingAuth:

    def test_login_scenario(self):
        diagnostics = scan('function login(req, res) { return db.find(req.body); }')

        assert codes(diagnostics) == [DiagnosticCode.MISSING_AUTH]
        assert 'login' in diagnostics[0].message
        assert diagnostics[0].message == 'Possible missing authorization check in function "login".'

    def test_keyword_within_window_suppresses(self):
        lines = ['def admin_panel(request):'] + ['    pass'] * 6 + ['    check_role(request)']
        assert scan('\n'.join(lines)) == []

    def test_keyword_on_ninth_line_is_too_late(self):
        lines = ['def admin_panel(request):'] + ['    pass'] * 7 + ['    check_role(request)']
        diagnostics = scan('\n'.join(lines))
        assert codes(diagnostics) == [DiagnosticCode.MISSING_AUTH]
        assert diagnostics[0].line == 0

    def test_arrow_function(self):
        diagnostics = scan('const adminPanel = (req, res) => {\n  res.send("ok");\n};')
        assert codes(diagnostics) == [DiagnosticCode.MISSING_AUTH]
        assert '"adminPanel"' in diagnostics[0].message

    def test_req_user_counts_as_check(self):
        text = 'function getUser(req, res) {\n  return req.user;\n}'
        assert scan(text) == []

    def test_non_sensitive_function_ignored(self):
        assert scan('function render(items) {\n  return items;\n}') == []

    def test_range_covers_definition_line(self):
        line = 'function getUser(id) {'
        diagnostic = scan(line + '\n  return db.get(id);\n}')[0]
        assert (diagnostic.range.start_col, diagnostic.range.end_col) == (0, len(line))

    def test_function_name_extraction(self):
        assert MissingAuthDetector.function_name('def login(user):') == 'login'
        assert MissingAuthDetector.function_name('x = 1') is None


class TestScan:

    def test_empty_text(self):
        assert scan('') == []

    def test_empty_lines_never_match(self):
        assert scan('\n\n\r\n') == []

    def test_secret_results_precede_auth_results(self):
        text = 'function login(req) {\n  const token = "abc";\n}'
        assert codes(scan(text)) == [DiagnosticCode.HARDCODED_SECRET, DiagnosticCode.MISSING_AUTH]

    def test_crlf_lines(self):
        diagnostics = scan('x = 1\r\napi_key = "k"\r\n')
        assert [d.line for d in diagnostics] == [1]
        assert diagnostics[0].range.end_col == len('api_key = "k"')


def test_rules_listing():
    rules = get_rules()
    assert [r['id'] for r in rules] == ['hardcoded_secret', 'missing_auth']
    assert rules[0]['cwe_id'] == 'CWE-798'
