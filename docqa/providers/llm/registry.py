"""Maps a prompt row's ``model_provider`` to a configured LLM adapter.

Prompt rows name the provider by vendor (``google``, ``anthropic``,
``openai``); adapters identify themselves by product (``gemini`` ...).
Both spellings resolve.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from docqa.interfaces.llm_provider import ILLMProvider
from docqa.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_ALIASES = {
    "google": "gemini",
    "gemini": "gemini",
    "anthropic": "anthropic",
    "claude": "anthropic",
    "openai": "openai",
}


class LLMProviderRegistry:
    """Lookup table of LLM adapters keyed by provider name."""

    def __init__(self, providers: Iterable[ILLMProvider]) -> None:
        self._providers: dict[str, ILLMProvider] = {
            p.get_provider_name(): p for p in providers
        }
        logger.info("llm_registry_built", providers=sorted(self._providers))

    def get(self, model_provider: str) -> ILLMProvider:
        """Return the adapter for *model_provider*.

        Raises
        ------
        ConfigurationError
            If no adapter is registered under that name.
        """
        key = _ALIASES.get(model_provider.lower(), model_provider.lower())
        provider = self._providers.get(key)
        if provider is None:
            raise ConfigurationError(
                message=f"No LLM provider configured for '{model_provider}'",
            )
        return provider

    def names(self) -> list[str]:
        return sorted(self._providers)

    def available(self) -> dict[str, bool]:
        return {name: p.is_available() for name, p in sorted(self._providers.items())}
