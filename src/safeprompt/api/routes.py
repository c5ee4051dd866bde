"""
Flask API routes for SafePrompt.
Provides REST endpoints for scanning text and files, enhancing prompts and
computing quick fixes.

Endpoints:
- POST /scan: Scan source text
- POST /scan-file: Scan uploaded source files
- POST /enhance: Enhance a single code-generation prompt
- POST /quick-fix: List quick fixes for the diagnostics on a line
- GET /rules: List detection rules
- GET /health: Health check endpoint
"""

import os
import asyncio
import tempfile
from flask import Blueprint, request, jsonify
from werkzeug.utils import secure_filename

from .. import __version__
from ..core.config import AnalyzerSettings
from ..core.detectors import get_rules, scan
from ..core.diagnostics import get_severity_summary
from ..core.documents import Document
from ..core.enhancer import ConfigurationError, EnhancementError, PromptEnhancer
from ..core.host import InMemoryDiagnosticCollection
from ..core.prompts import SUPPORTED_LANGUAGES
from ..core.quickfix import provide_code_actions
from ..core.scanner import Scanner, ScanConfig
from ..core.service import SafePromptService
from ..core.utils import EXTENSION_TO_LANGUAGE, cleanup_temp_directory, logger


# Create blueprint
api = Blueprint('api', __name__)

ALLOWED_EXTENSIONS = set(EXTENSION_TO_LANGUAGE)


def allowed_file(filename: str) -> bool:
    """Check if a file has an allowed extension."""
    ext = os.path.splitext(filename)[1].lower()
    return ext in ALLOWED_EXTENSIONS


def _error(message: str, status: int, **extra):
    return jsonify({'success': False, 'error': message, **extra}), status


def _json_body():
    """Return the JSON object body, or an error response."""
    if not request.is_json:
        return None, _error('Request must be JSON. Set Content-Type: application/json', 400)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, _error('Request body must be a JSON object', 400)
    return data, None


def _document_from_request(data: dict):
    """Build a Document from a JSON body, or return an error response."""
    text = data.get('text')
    if not isinstance(text, str):
        return None, _error('Missing required field: text', 400)

    language_id = data.get('language_id', 'javascript')
    if not isinstance(language_id, str) or language_id not in SUPPORTED_LANGUAGES:
        return None, _error(
            f'Unsupported language_id: {language_id}',
            400,
            supported_languages=sorted(SUPPORTED_LANGUAGES)
        )

    uri = data.get('uri') or 'untitled:request'
    return Document(uri=uri, language_id=language_id, text=text), None


async def _scan_with_enhancement(document: Document):
    service = SafePromptService(
        publisher=InMemoryDiagnosticCollection(),
        settings=AnalyzerSettings.from_env(),
    )
    try:
        service.run_scan(document)
        await service.wait_idle(document.uri)
        return service.publisher.get(document.uri)
    finally:
        await service.aclose()


@api.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'service': 'safeprompt',
        'version': __version__
    })


@api.route('/scan', methods=['POST'])
def scan_text():
    """
    Scan source text.

    Request:
        - Content-Type: application/json
        - Body: { "text": "...", "language_id": "javascript", "enhance": false }

    Response:
        - JSON with diagnostics and a severity summary

    Example:
        curl -X POST -H "Content-Type: application/json" \
             -d '{"text": "const apiKey = \\"sk-1\\"", "language_id": "javascript"}' \
             http://localhost:5000/scan
    """
    data, error = _json_body()
    if error:
        return error

    document, error = _document_from_request(data)
    if error:
        return error

    try:
        if data.get('enhance'):
            diagnostics = asyncio.run(_scan_with_enhancement(document))
        else:
            diagnostics = scan(document.text)
    except Exception as e:
        logger.exception("Error during text scan")
        return _error(f'Scan failed: {str(e)}', 500)

    diagnostics_dicts = [d.to_dict() for d in diagnostics]
    return jsonify({
        'success': True,
        'uri': document.uri,
        'language_id': document.language_id,
        'diagnostics': diagnostics_dicts,
        'severity_summary': get_severity_summary(diagnostics_dicts),
    })


@api.route('/scan-file', methods=['POST'])
def scan_file():
    """
    Scan uploaded source files.

    Request:
        - Content-Type: multipart/form-data
        - files: One or more source code files

    Example:
        curl -X POST -F "files=@app.js" http://localhost:5000/scan-file
    """
    if 'files' not in request.files:
        return _error('No files provided. Use "files" field to upload source code.', 400)

    files = request.files.getlist('files')
    if not files or all(f.filename == '' for f in files):
        return _error('No files selected for upload.', 400)

    temp_dir = tempfile.mkdtemp(prefix='safeprompt_scan_')

    try:
        uploaded_files = []
        rejected_files = []

        for file in files:
            if file and file.filename:
                filename = secure_filename(file.filename)
                if allowed_file(filename):
                    file.save(os.path.join(temp_dir, filename))
                    uploaded_files.append(filename)
                else:
                    rejected_files.append(filename)

        if not uploaded_files:
            return _error(
                'No valid source files uploaded.',
                400,
                rejected_files=rejected_files,
                allowed_extensions=sorted(ALLOWED_EXTENSIONS)
            )

        scanner = Scanner(config=ScanConfig(parallel_workers=1))
        result_dict = scanner.scan(temp_dir).to_dict()
        result_dict['uploaded_files'] = uploaded_files
        result_dict['rejected_files'] = rejected_files
        result_dict['target_path'] = 'upload'

        return jsonify(result_dict)

    except Exception as e:
        logger.exception("Error during file scan")
        return _error(f'Scan failed: {str(e)}', 500)

    finally:
        cleanup_temp_directory(temp_dir)


@api.route('/enhance', methods=['POST'])
def enhance_prompt():
    """
    Enhance a code-generation prompt.

    Request:
        - Body: { "prompt": "Create login website" }

    Response:
        - 200 with { "enhanced": "..." }
        - 503 when no credential is configured, 502 on model errors
    """
    data, error = _json_body()
    if error:
        return error

    prompt = data.get('prompt')
    prompt = prompt.strip() if isinstance(prompt, str) else ''
    if not prompt:
        return _error('Missing required field: prompt', 400)

    enhancer = PromptEnhancer(AnalyzerSettings.from_env())

    async def _run():
        try:
            return await enhancer.enhance(prompt)
        finally:
            await enhancer.aclose()

    try:
        enhanced = asyncio.run(_run())
    except ConfigurationError as e:
        return _error(str(e), 503, error_type='ConfigurationError')
    except EnhancementError as e:
        return _error(str(e), 502, error_type=e.__class__.__name__)

    return jsonify({'success': True, 'prompt': prompt, 'enhanced': enhanced})


@api.route('/quick-fix', methods=['POST'])
def quick_fix():
    """
    List quick fixes for the diagnostics on one line.

    Request:
        - Body: { "text": "...", "language_id": "python", "line": 0 }
    """
    data, error = _json_body()
    if error:
        return error

    document, error = _document_from_request(data)
    if error:
        return error

    try:
        line = int(data.get('line', 0))
    except (TypeError, ValueError):
        return _error('line must be an integer', 400)

    diagnostics = [d for d in scan(document.text) if d.line == line]
    actions = provide_code_actions(document, diagnostics)

    return jsonify({
        'success': True,
        'line': line,
        'actions': [action.to_dict() for action in actions],
    })


@api.route('/rules', methods=['GET'])
def list_rules():
    """Get information about the detection rules."""
    rules = get_rules()
    return jsonify({
        'version': __version__,
        'total_rules': len(rules),
        'rules': rules,
        'supported_languages': sorted(SUPPORTED_LANGUAGES),
    })


@api.errorhandler(413)
def request_entity_too_large(error):
    """Handle file too large error."""
    return _error('File too large. Maximum size is 16MB.', 413)


@api.errorhandler(500)
def internal_server_error(error):
    """Handle internal server errors."""
    return _error('Internal server error occurred.', 500)
