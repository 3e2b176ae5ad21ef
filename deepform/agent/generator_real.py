"""GeneratorReal: Anthropic Messages API implementation of the Generator protocol.

No retries and no client-side timeout beyond the SDK defaults; a failed call
surfaces as GenerationError and the caller decides what to report.
"""

from collections.abc import AsyncIterator

import anthropic
import structlog
from anthropic import AsyncAnthropic

from deepform.agent.llm_helpers import extract_text
from deepform.core.config import get_settings
from deepform.core.exceptions import GenerationError

logger = structlog.get_logger(__name__)


class GeneratorReal:
    """Calls Claude through the official async SDK."""

    def __init__(self, client: AsyncAnthropic | None = None, model: str | None = None):
        settings = get_settings()
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key, max_retries=0)
        self.model = model or settings.generation_model

    async def complete(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 4096,
        purpose: str = "completion",
    ) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
            )
        except anthropic.APIError as exc:
            logger.warning("generation_failed", purpose=purpose, error=str(exc), error_type=type(exc).__name__)
            raise GenerationError(str(exc)) from exc

        text = extract_text(response.content)
        if not text:
            logger.warning("generation_empty", purpose=purpose, stop_reason=response.stop_reason)
            raise GenerationError("Generative service returned no text")

        logger.info(
            "generation_completed",
            purpose=purpose,
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return text

    async def stream(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 1024,
        purpose: str = "chat",
    ) -> AsyncIterator[str]:
        received = False
        try:
            async with self.client.messages.stream(
                model=self.model,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        received = True
                        yield text
        except anthropic.APIError as exc:
            logger.warning("generation_stream_failed", purpose=purpose, error=str(exc), error_type=type(exc).__name__)
            raise GenerationError(str(exc)) from exc

        if not received:
            raise GenerationError("Generative service returned no text")

        logger.info("generation_streamed", purpose=purpose, model=self.model)
