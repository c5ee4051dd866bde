"""
Utility functions for SafePrompt.
Provides logging setup, language detection and file helpers.
"""

import os
import shutil
import logging
from typing import List, Optional
from pathlib import Path

# Configure logging
logging.basicConfig(
    level=os.environ.get('SAFEPROMPT_LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('safeprompt')


# Supported file extensions for each language id
SUPPORTED_EXTENSIONS = {
    'javascript': ['.js', '.mjs', '.cjs'],
    'javascriptreact': ['.jsx'],
    'python': ['.py'],
}

# Reverse mapping: extension to language id
EXTENSION_TO_LANGUAGE = {}
for lang, exts in SUPPORTED_EXTENSIONS.items():
    for ext in exts:
        EXTENSION_TO_LANGUAGE[ext] = lang


def get_file_extension(filepath: str) -> str:
    """Extract the file extension from a filepath."""
    return Path(filepath).suffix.lower()


def get_language_from_extension(filepath: str) -> Optional[str]:
    """Determine the language id based on file extension."""
    ext = get_file_extension(filepath)
    return EXTENSION_TO_LANGUAGE.get(ext)


def is_supported_file(filepath: str) -> bool:
    """Check if a file is supported for scanning based on its extension."""
    ext = get_file_extension(filepath)
    return ext in EXTENSION_TO_LANGUAGE


def get_all_files(directory: str, recursive: bool = True) -> List[str]:
    """
    Get all supported source files from a directory.

    Args:
        directory: Path to the directory to scan
        recursive: Whether to scan subdirectories

    Returns:
        Sorted list of absolute file paths
    """
    files = []
    directory = Path(directory)

    if not directory.exists():
        logger.warning(f"Directory does not exist: {directory}")
        return files

    candidates = directory.rglob('*') if recursive else directory.iterdir()
    for filepath in candidates:
        if filepath.is_file() and is_supported_file(str(filepath)):
            files.append(str(filepath.absolute()))

    return sorted(files)


def read_file_content(filepath: str, encoding: str = 'utf-8') -> Optional[str]:
    """
    Safely read file content with error handling.

    Returns:
        File content as string, or None if reading failed
    """
    try:
        # newline='' keeps \r\n intact so columns match the file on disk
        with open(filepath, 'r', encoding=encoding, errors='ignore', newline='') as f:
            return f.read()
    except (IOError, OSError) as e:
        logger.error(f"Failed to read file {filepath}: {e}")
        return None


def write_file_content(filepath: str, content: str, encoding: str = 'utf-8') -> bool:
    """Write content back to a file. Returns False on failure."""
    try:
        with open(filepath, 'w', encoding=encoding, newline='') as f:
            f.write(content)
        return True
    except (IOError, OSError) as e:
        logger.error(f"Failed to write file {filepath}: {e}")
        return False


def get_relative_path(filepath: str, base_dir: str) -> str:
    """Get the relative path of a file from a base directory."""
    try:
        return str(Path(filepath).relative_to(base_dir))
    except ValueError:
        return filepath


def truncate_string(s: str, max_length: int = 100, suffix: str = '...') -> str:
    """Truncate a string to a maximum length with suffix."""
    if len(s) <= max_length:
        return s
    return s[:max_length - len(suffix)] + suffix


def cleanup_temp_directory(directory: str) -> bool:
    """Remove a temporary upload directory. Returns False if nothing was removed."""
    try:
        if os.path.isdir(directory):
            shutil.rmtree(directory)
            return True
        return False
    except OSError as e:
        logger.error(f"Failed to clean up {directory}: {e}")
        return False
