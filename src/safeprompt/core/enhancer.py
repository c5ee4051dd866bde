"""
Enhancement client: turns an informal code-generation prompt into a
security-hardened one using an OpenAI-compatible chat-completion endpoint.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from .config import AnalyzerSettings


SYSTEM_PROMPT = (
    "You are a secure coding assistant. Enhance a developer's code-generation "
    "prompt by adding security best practices (authentication, input validation, "
    "avoiding hardcoded secrets, RBAC, CSRF protections, secure defaults). "
    "Produce a short enhanced prompt."
)

USER_PROMPT_TEMPLATE = (
    'Enhance this code-generation prompt with security best practices: "{prompt}"'
)


class EnhancementError(Exception):
    """Base class for prompt enhancement failures."""
    pass


class ConfigurationError(EnhancementError):
    """No credential is configured for the model service."""
    pass


class EmptyResponseError(EnhancementError):
    """The model answered without usable content."""
    pass


class RemoteError(EnhancementError):
    """Transport or API failure while calling the model service."""
    pass


def build_messages(prompt: str) -> List[Dict[str, str]]:
    """Build the system + user message pair for a prompt."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(prompt=prompt)},
    ]


class PromptEnhancer:
    """
    Async client for the prompt enhancement model.

    Usage:
        enhancer = PromptEnhancer(AnalyzerSettings())
        text = await enhancer.enhance("Create login website")
    """

    def __init__(
        self,
        settings: Optional[AnalyzerSettings] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self.settings = settings or AnalyzerSettings()
        self._client = client
        self._client_key: Optional[str] = None
        self.logger = logging.getLogger('enhancer')

    def _get_client(self, api_key: str) -> AsyncOpenAI:
        # Injected clients are used as-is; built clients follow key rotation
        if self._client is not None and self._client_key in (None, api_key):
            return self._client

        options: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": self.settings.base_url,
            "max_retries": self.settings.max_retries,
        }
        if self.settings.request_timeout is not None:
            options["timeout"] = self.settings.request_timeout

        self._client = AsyncOpenAI(**options)
        self._client_key = api_key
        return self._client

    async def enhance(self, prompt: str) -> str:
        """
        Enhance a prompt.

        Raises:
            ConfigurationError: no API key configured
            EmptyResponseError: the model returned no content
            RemoteError: the request failed
        """
        api_key = self.settings.get_api_key()
        if not api_key:
            raise ConfigurationError(
                f"{self.settings.api_key_env} is not set "
                f"(map {self.settings.api_key_alias_env} -> {self.settings.api_key_env} "
                "or set it directly)."
            )

        client = self._get_client(api_key)
        self.logger.debug(f"Requesting enhancement via {self.settings.model}")

        try:
            completion = await client.chat.completions.create(
                model=self.settings.model,
                messages=build_messages(prompt),
                temperature=self.settings.temperature,
                top_p=self.settings.top_p,
                max_tokens=self.settings.max_tokens,
            )
        except OpenAIError as e:
            raise RemoteError(str(e)) from e

        choices = getattr(completion, "choices", None) or []
        content = None
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)

        if not content or not content.strip():
            raise EmptyResponseError("Empty response from NVIDIA model")

        return content.strip()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if one was built."""
        client = self._client
        self._client = None
        self._client_key = None
        close = getattr(client, "close", None)
        if callable(close):
            await close()
