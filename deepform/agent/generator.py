"""Generator Protocol: the testable abstraction over the generative text service.

The core sends an ordered list of ``{role, content}`` turns, a system
instruction and a max-output bound, and consumes only the concatenated text
blocks of the reply.

Implementations:
- GeneratorReal: Anthropic Messages API
- GeneratorFake: scenario-based test double
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class Generator(Protocol):
    """Protocol for all calls to the generative service.

    Both methods raise ``GenerationError`` when the service fails or returns
    no text. Neither retries.
    """

    async def complete(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 4096,
        purpose: str = "completion",
    ) -> str:
        """Return the full reply text.

        Args:
            system: System instruction
            messages: Ordered ``{role, content}`` turns, first one from the user
            max_tokens: Upper bound on output size
            purpose: Label for logging (chat, facts, hypotheses, ...)
        """
        ...

    def stream(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 1024,
        purpose: str = "chat",
    ) -> AsyncIterator[str]:
        """Yield reply text fragments in order.

        Closing the iterator early (``aclose()``) cancels the upstream call.
        """
        ...
