"""
Entry point for running the package as a module.

Usage:
    python -m safeprompt /path/to/source
    python -m safeprompt --serve
"""

from .cli import main

if __name__ == '__main__':
    main()
