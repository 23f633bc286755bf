"""LangChain and OpenAI configuration for the optional coaching step."""

from functools import lru_cache
from typing import Optional

from langchain_openai import ChatOpenAI

from biaslens.core.config import Settings, get_settings
from biaslens.core.logging import logger

PLACEHOLDER_KEYS = {"", "sk-your-api-key-here"}


class AIConfig:
    """Centralized AI/LangChain configuration."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._llm_cache: Optional[ChatOpenAI] = None

    def is_configured(self) -> bool:
        """True when an OpenAI key that is not a placeholder is present."""
        api_key = self.settings.openai_api_key
        if api_key in PLACEHOLDER_KEYS:
            logger.info("OpenAI API key not configured; coaching will use the template fallback")
            return False
        if not api_key.startswith("sk-"):
            logger.warning("OpenAI API key has invalid format; coaching will use the template fallback")
            return False
        return True

    def get_llm(self) -> ChatOpenAI:
        """Get cached ChatOpenAI instance."""
        if self._llm_cache is not None:
            return self._llm_cache

        if not self.is_configured():
            raise ValueError("OpenAI API key not configured")

        self._llm_cache = ChatOpenAI(
            api_key=self.settings.openai_api_key,
            model=self.settings.openai_model,
            temperature=self.settings.coach_temperature,
            max_tokens=self.settings.coach_max_tokens,
            timeout=self.settings.coach_timeout_seconds,
        )
        logger.info("ChatOpenAI initialized (model: %s)", self.settings.openai_model)
        return self._llm_cache


@lru_cache(maxsize=1)
def get_ai_config() -> AIConfig:
    """Get cached AI config instance."""
    return AIConfig(get_settings())
