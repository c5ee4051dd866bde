"""Tests for the Flask REST API."""

import io

import pytest

from safeprompt.api import routes
from safeprompt.cli import create_app
from safeprompt.core.enhancer import RemoteError

from conftest import FakeEnhancer


@pytest.fixture
def client(no_credentials):
    app = create_app()
    app.config['TESTING'] = True
    return app.test_client()


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_index_lists_endpoints(client):
    data = client.get('/').get_json()
    assert 'POST /scan' in data['endpoints']


def test_rules(client):
    data = client.get('/rules').get_json()
    assert data['total_rules'] == 2
    assert 'python' in data['supported_languages']


def test_scan_text(client):
    response = client.post('/scan', json={
        'text': 'const apiKey = "sk-12345"',
        'language_id': 'javascript',
    })

    assert response.status_code == 200
    data = response.get_json()
    assert [d['code'] for d in data['diagnostics']] == ['hardcoded_secret']
    assert data['severity_summary']['total'] == 1


def test_scan_requires_json(client):
    response = client.post('/scan', data='text')
    assert response.status_code == 400


def test_scan_rejects_unknown_language(client):
    response = client.post('/scan', json={'text': '', 'language_id': 'cobol'})
    assert response.status_code == 400
    assert 'cobol' in response.get_json()['error']


def test_scan_with_enhancement_reports_missing_credential(client):
    response = client.post('/scan', json={
        'text': '// PROMPT: Create login website',
        'enhance': True,
    })

    diagnostics = response.get_json()['diagnostics']
    assert [d['code'] for d in diagnostics] == ['enhanced_prompt_failed']
    assert 'OPENAI_API_KEY is not set' in diagnostics[0]['message']


def test_scan_file_upload(client):
    response = client.post(
        '/scan-file',
        data={'files': [
            (io.BytesIO(b'const token = "t";\n'), 'app.js'),
            (io.BytesIO(b'hello'), 'notes.txt'),
        ]},
        content_type='multipart/form-data',
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data['uploaded_files'] == ['app.js']
    assert data['rejected_files'] == ['notes.txt']
    assert data['total_diagnostics'] == 1


def test_scan_file_without_files(client):
    response = client.post('/scan-file', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_enhance_requires_prompt(client):
    response = client.post('/enhance', json={'prompt': '  '})
    assert response.status_code == 400


def test_enhance_without_credential(client):
    response = client.post('/enhance', json={'prompt': 'Create login website'})
    assert response.status_code == 503
    assert 'OPENAI_API_KEY is not set' in response.get_json()['error']


def test_enhance_success(client, monkeypatch):
    enhancer = FakeEnhancer(responses={'upload form': 'upload form with size limits'})
    monkeypatch.setattr(routes, 'PromptEnhancer', lambda settings: enhancer)

    response = client.post('/enhance', json={'prompt': 'upload form'})

    assert response.status_code == 200
    assert response.get_json()['enhanced'] == 'upload form with size limits'
    assert enhancer.closed is True


def test_enhance_remote_failure(client, monkeypatch):
    enhancer = FakeEnhancer(error=RemoteError('Connection error.'))
    monkeypatch.setattr(routes, 'PromptEnhancer', lambda settings: enhancer)

    response = client.post('/enhance', json={'prompt': 'x'})

    assert response.status_code == 502
    assert response.get_json()['error_type'] == 'RemoteError'


def test_quick_fix(client):
    response = client.post('/quick-fix', json={
        'text': 'x = 1\nAPI_KEY = "abc"\n',
        'language_id': 'python',
        'line': 1,
    })

    actions = response.get_json()['actions']
    assert len(actions) == 1
    assert actions[0]['edits'][0]['new_text'] == 'os.environ.get("API_KEY")'
    assert actions[0]['command'] == 'SafePrompt.runScan'


def test_quick_fix_bad_line(client):
    response = client.post('/quick-fix', json={'text': '', 'line': 'first'})
    assert response.status_code == 400


@pytest.mark.parametrize('path', ['/scan', '/enhance', '/quick-fix'])
def test_non_object_json_body(client, path):
    response = client.post(path, json=[])

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Request body must be a JSON object'


def test_scan_rejects_non_string_language(client):
    response = client.post('/scan', json={'text': '', 'language_id': ['python']})
    assert response.status_code == 400
