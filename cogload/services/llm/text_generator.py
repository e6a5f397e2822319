"""Text generation capability consumed by the tip service.

The service only depends on the TextGenerator protocol, so tests (and other
vendors) can plug in their own implementation.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from cogload.config.settings import settings
from cogload.services.llm.model import get_model


class TextGenerator(Protocol):
    async def generate(self, prompt: str, *, system_prompt: str, max_tokens: int | None = None) -> str:
        """Return generated text for prompt."""
        ...


class PydanticAITextGenerator:
    """TextGenerator backed by a pydantic_ai Agent."""

    def __init__(
        self,
        provider: str | None = None,
        model_name: str | None = None,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider or settings.llm_provider
        self.model_name = model_name or settings.llm_model
        self.temperature = temperature

    async def generate(self, prompt: str, *, system_prompt: str, max_tokens: int | None = None) -> str:
        model_settings: ModelSettings = {"temperature": self.temperature}
        if max_tokens is not None:
            model_settings["max_tokens"] = max_tokens

        agent = Agent(
            model=get_model(self.provider, self.model_name),
            system_prompt=system_prompt,
        )

        logger.debug(
            "LLM Prompt: tip generation",
            system_prompt=system_prompt,
            user_prompt=prompt,
        )
        result = await agent.run(prompt, model_settings=model_settings)
        output = result.output
        return output if isinstance(output, str) else str(output)
