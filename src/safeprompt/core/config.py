"""
Runtime configuration for SafePrompt.

Credentials come from the process environment (optionally seeded from a
``.env`` file). ``NVIDIA_API`` is accepted as an alias for
``OPENAI_API_KEY``.
"""

import os
from typing import Optional
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from .utils import logger


API_KEY_ENV = 'OPENAI_API_KEY'
API_KEY_ALIAS_ENV = 'NVIDIA_API'

DEFAULT_BASE_URL = 'https://integrate.api.nvidia.com/v1'
DEFAULT_MODEL = 'nvidia/llama-3.1-nemotron-70b-instruct'
DEFAULT_DEBOUNCE_SECONDS = 0.8


def apply_credential_alias(
    canonical: str = API_KEY_ENV,
    alias: str = API_KEY_ALIAS_ENV
) -> bool:
    """
    Copy the alias variable to the canonical one if only the alias is set.

    Returns:
        True if the canonical variable was populated from the alias
    """
    if os.environ.get(alias) and not os.environ.get(canonical):
        os.environ[canonical] = os.environ[alias]
        logger.debug(f"Mapped {alias} -> {canonical}")
        return True
    return False


def load_environment(env_file: Optional[str] = None) -> bool:
    """
    Load a ``.env`` file without overriding existing variables, then apply
    the credential alias.

    Returns:
        True if a credential is available afterwards
    """
    path = env_file or find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)
    apply_credential_alias()
    configured = bool(os.environ.get(API_KEY_ENV))
    if not configured:
        logger.info(
            f"{API_KEY_ENV} is not set; prompt enhancement is disabled "
            "but security scanning still runs"
        )
    return configured


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default


@dataclass
class AnalyzerSettings:
    """Settings for the debounce scheduler and the enhancement client."""
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    api_key_env: str = API_KEY_ENV
    api_key_alias_env: str = API_KEY_ALIAS_ENV
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.2
    top_p: float = 1.0
    max_tokens: int = 180
    request_timeout: Optional[float] = None
    max_retries: int = 0

    @classmethod
    def from_env(cls) -> 'AnalyzerSettings':
        """
        Build settings, honouring ``SAFEPROMPT_DEBOUNCE_MS``,
        ``SAFEPROMPT_BASE_URL`` and ``SAFEPROMPT_MODEL``.
        """
        settings = cls()
        debounce_ms = _float_env('SAFEPROMPT_DEBOUNCE_MS', DEFAULT_DEBOUNCE_SECONDS * 1000)
        settings.debounce_seconds = max(0.0, debounce_ms / 1000.0)
        settings.base_url = os.environ.get('SAFEPROMPT_BASE_URL', settings.base_url)
        settings.model = os.environ.get('SAFEPROMPT_MODEL', settings.model)
        return settings

    def get_api_key(self) -> Optional[str]:
        """
        Current credential, read from the environment at call time.

        Falls back to the alias variable so hosts that never call
        ``load_environment`` still pick up ``NVIDIA_API``.
        """
        return os.environ.get(self.api_key_env) or os.environ.get(self.api_key_alias_env) or None
