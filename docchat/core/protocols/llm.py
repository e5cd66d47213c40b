"""LLM protocol for dependency injection."""
from typing import AsyncIterator, Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for chat-completion client."""

    def chat_stream(
        self,
        user_message: str,
        context: str,
        grounded: bool = True,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Stream an answer conditioned on retrieved passages.

        Args:
            user_message: User's question.
            context: Formatted documentation excerpts.
            grounded: Answer strictly from context when True; broader when False.
            model: Override the configured model.

        Yields:
            Response tokens.
        """
        ...
