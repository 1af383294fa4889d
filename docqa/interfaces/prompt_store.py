"""Abstract base class for prompt configuration storage."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.extraction import PromptConfig


class IPromptStore(ABC):
    """Contract for looking up the active prompt per pipeline function."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables if they do not exist."""

    @abstractmethod
    async def get_active_prompt(self, function_name: str) -> PromptConfig:
        """Return the active prompt for *function_name*.

        Raises
        ------
        docqa.utils.errors.ConfigurationError
            If no active prompt exists.
        """

    @abstractmethod
    async def upsert_prompt(self, prompt: PromptConfig) -> None:
        """Insert or replace the prompt row for ``prompt.function_name``."""

    @abstractmethod
    async def seed_defaults(self) -> int:
        """Install the built-in prompts where missing; return how many were added."""
