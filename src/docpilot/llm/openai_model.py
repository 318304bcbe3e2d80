"""OpenAI-backed implementation of the LanguageModel protocol."""

import logging

from openai import AsyncOpenAI

from docpilot.config import Settings

logger = logging.getLogger(__name__)


class OpenAIChatModel:
    """Chat-completions client.

    The openai client retries rate limits and timeouts itself, bounded by
    ``max_retries``.
    """

    def __init__(
        self,
        model_name: str,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        temperature: float = 0.2,
    ):
        self.model_name = model_name
        self.temperature = temperature
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        logger.info("OpenAI chat model initialized: %s", model_name)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatModel":
        return cls(
            settings.model_name,
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
        )

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            temperature=self.temperature,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
