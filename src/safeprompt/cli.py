#!/usr/bin/env python3
"""
SafePrompt - CLI and Server Entry Point

This module provides:
1. Command-line interface for scanning files
2. Flask server mode for API access

Usage:
    # Scan a directory
    python -m safeprompt /path/to/source

    # Scan and enhance PROMPT: comments (needs OPENAI_API_KEY or NVIDIA_API)
    python -m safeprompt /path/to/source --enhance

    # Replace hardcoded secrets with environment lookups, then rescan
    python -m safeprompt /path/to/source --fix

    # Start API server
    python -m safeprompt --serve --port 8080
"""

import argparse
import sys
import json
import os
import logging

from . import __version__
from .core.config import AnalyzerSettings, load_environment
from .core.diagnostics import (
    SEVERITY_METADATA,
    get_severity_from_string,
    get_severity_summary,
    meets_severity,
)
from .core.reporters import ReportGenerator
from .core.scanner import Scanner, ScanConfig
from .core.utils import truncate_string


def setup_argparse() -> argparse.ArgumentParser:
    """Set up command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog='safeprompt',
        description='Flag insecure patterns and harden PROMPT: comments',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /path/to/source              Scan a directory
  %(prog)s /path/to/file.js             Scan a single file
  %(prog)s /path/to/source --enhance    Scan and enhance PROMPT: comments
  %(prog)s /path/to/source -o out.json  Scan and save a JSON report
  %(prog)s --serve --port 8080          Start API server on a custom port
        """
    )

    parser.add_argument(
        'target',
        nargs='?',
        help='Path to file or directory to scan'
    )

    # Output options
    parser.add_argument(
        '-o', '--output',
        metavar='FILE',
        help='Write a JSON report to FILE'
    )

    parser.add_argument(
        '--json-only',
        action='store_true',
        help='Output only JSON to stdout (for integration)'
    )

    # Scan options
    parser.add_argument(
        '--enhance',
        action='store_true',
        help='Send PROMPT: comments to the model for security hardening'
    )

    parser.add_argument(
        '--fix',
        action='store_true',
        help='Replace hardcoded secrets with environment variable lookups before scanning'
    )

    parser.add_argument(
        '--env-file',
        metavar='PATH',
        help='Load credentials from this .env file'
    )

    parser.add_argument(
        '--no-recursive',
        action='store_false',
        dest='recursive',
        help='Disable recursive scanning'
    )

    parser.add_argument(
        '-j', '--jobs',
        type=int,
        default=4,
        metavar='N',
        help='Number of parallel workers (default: 4)'
    )

    parser.add_argument(
        '--max-file-size',
        type=int,
        default=5*1024*1024,
        metavar='BYTES',
        help='Maximum file size to scan in bytes (default: 5MB)'
    )

    parser.add_argument(
        '--exclude',
        action='append',
        metavar='PATTERN',
        help='Glob patterns to exclude (can be repeated)'
    )

    parser.add_argument(
        '--severity',
        choices=['info', 'warning'],
        help='Minimum severity to report'
    )

    # Server options
    parser.add_argument(
        '--serve',
        action='store_true',
        help='Start the Flask API server'
    )

    parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Server host (default: 127.0.0.1)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=5000,
        help='Server port (default: 5000)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def print_summary(result: dict, verbose: bool = False):
    """Print a human-readable summary of scan results."""
    print("\n" + "=" * 60)
    print("SCAN SUMMARY")
    print("=" * 60)

    print(f"\nTarget:        {result['target_path']}")
    print(f"Scan ID:       {result['scan_id']}")
    print(f"Scan Time:     {result['scan_time']}s")
    print(f"Files Scanned: {result['files_scanned']}")
    print(f"Files Skipped: {result['files_skipped']}")

    by_severity = result.get('severity_summary', {}).get('by_severity', {})
    reset = '\033[0m'

    print(f"\n{'Severity':<12} {'Count':<8}")
    print("-" * 20)
    for level in sorted(SEVERITY_METADATA, key=lambda s: SEVERITY_METADATA[s]['priority']):
        count = by_severity.get(level.value, 0)
        if count > 0:
            color = SEVERITY_METADATA[level]['color']
            print(f"{color}{level.value.upper():<12} {count:<8}{reset}")
        else:
            print(f"{level.value.upper():<12} {count:<8}")

    total = result.get('total_diagnostics', 0)
    print("-" * 20)
    print(f"{'TOTAL':<12} {total:<8}")

    for file_result in result.get('files', []):
        diagnostics = file_result.get('diagnostics', [])
        if not diagnostics:
            continue
        print(f"\n{file_result['file_path']}")
        for diagnostic in diagnostics:
            level = get_severity_from_string(diagnostic.get('severity', 'info'))
            color = SEVERITY_METADATA[level]['color']
            message = diagnostic.get('message', '')
            if not verbose:
                message = truncate_string(message, 100)
            print(
                f"  {color}{level.value.upper():<8}{reset} "
                f"line {diagnostic.get('line_number', 0):<5} "
                f"[{diagnostic.get('code')}] {message}"
            )

    errors = result.get('errors', [])
    if errors:
        print("\n" + "-" * 60)
        print("ERRORS:")
        for error in errors[:5]:  # Limit to first 5 errors
            print(f"  - {error}")
        if len(errors) > 5:
            print(f"  ... and {len(errors) - 5} more errors")


def filter_by_severity(result_dict: dict, min_severity: str) -> dict:
    """Drop diagnostics below ``min_severity`` from a result dictionary."""
    kept = []
    for file_result in result_dict.get('files', []):
        file_result['diagnostics'] = [
            d for d in file_result['diagnostics'] if meets_severity(d, min_severity)
        ]
        kept.extend(file_result['diagnostics'])
    result_dict['total_diagnostics'] = len(kept)
    result_dict['severity_summary'] = get_severity_summary(kept)
    return result_dict


def run_scan(args) -> int:
    """Run a scan based on CLI arguments."""
    if not args.target:
        print("Error: No target specified. Use -h for help.", file=sys.stderr)
        return 1

    if not os.path.exists(args.target):
        print(f"Error: Target not found: {args.target}", file=sys.stderr)
        return 1

    load_environment(args.env_file)

    config = ScanConfig(
        recursive=args.recursive,
        parallel_workers=args.jobs,
        max_file_size=args.max_file_size,
        enhance_prompts=args.enhance,
    )
    if args.exclude:
        config.exclude_patterns.extend(args.exclude)

    scanner = Scanner(config=config, settings=AnalyzerSettings.from_env())

    if args.fix:
        fixed = scanner.fix(args.target)
        if not args.json_only:
            print(f"Replaced {fixed} hardcoded secret(s)")

    if not args.json_only:
        print(f"Scanning: {args.target}")
        if args.enhance:
            print("Waiting for prompt enhancements...")

    result = scanner.scan(args.target)
    result_dict = result.to_dict()

    if args.severity:
        result_dict = filter_by_severity(result_dict, args.severity)

    if args.output:
        ReportGenerator().generate_json_report(result_dict, args.output)

    if args.json_only:
        print(json.dumps(result_dict, indent=2))
    else:
        print_summary(result_dict, verbose=args.verbose)
        if args.output:
            print(f"\nReport saved to: {args.output}")

    if not result.success:
        return 1

    # Any warning-level diagnostic fails the run
    for file_result in result_dict['files']:
        for diagnostic in file_result['diagnostics']:
            if diagnostic['severity'] == 'warning':
                return 1
    return 0


def create_app():
    """Build the Flask application."""
    from flask import Flask
    from flask_cors import CORS
    from .api.routes import api

    app = Flask(__name__)
    CORS(app)

    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16 MB max upload
    app.register_blueprint(api, url_prefix='')

    @app.route('/')
    def index():
        return {
            'name': 'SafePrompt API',
            'version': __version__,
            'endpoints': {
                'POST /scan': 'Scan source text',
                'POST /scan-file': 'Scan uploaded source files',
                'POST /enhance': 'Enhance a code-generation prompt',
                'POST /quick-fix': 'List quick fixes for a line',
                'GET /rules': 'List detection rules',
                'GET /health': 'Health check'
            }
        }

    return app


def run_server(args):
    """Start the Flask API server."""
    load_environment(args.env_file)
    app = create_app()

    print("Starting SafePrompt API server...")
    print(f"Server: http://{args.host}:{args.port}")
    print("\nPress Ctrl+C to stop")

    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug
    )


def main(argv=None):
    """Main entry point."""
    parser = setup_argparse()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.json_only:
        logging.getLogger().setLevel(logging.WARNING)

    if args.serve:
        run_server(args)
    elif args.target:
        sys.exit(run_scan(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
