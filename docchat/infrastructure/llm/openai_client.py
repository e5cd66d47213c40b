import logging
from typing import AsyncIterator, Optional

from openai import APIError, AsyncOpenAI

from docchat.core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

GROUNDED_SYSTEM_PROMPT = """You are an expert assistant for the product documentation.

INSTRUCTIONS:
1. Answer ONLY from the provided documentation excerpts
2. If the answer is not in the excerpts, clearly state this
3. Cite sources using [Source Title](URL) format
4. For code examples, use the exact code from docs when available
5. Be concise but complete
6. If multiple approaches exist, mention the recommended one first

DOCUMENTATION EXCERPTS:
{context}"""

BROAD_SYSTEM_PROMPT = """You are an expert assistant for the product documentation.

The excerpts below matched the question only loosely.
- Use them where they apply and cite them as [Source Title](URL)
- You may fill gaps with general knowledge, but say which parts are not from the docs
- Start with "Based on the available documentation..." when the excerpts are only partly relevant
- If nothing below applies, say "I couldn't find specific documentation for this..."

DOCUMENTATION EXCERPTS:
{context}"""


class OpenAIChatClient:
    """Chat client for any OpenAI-compatible API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: str = "",
        model: str = "gpt-5-mini",
        max_tokens: int = 1024,
        temperature: Optional[float] = None,
    ):
        """Initialize chat client.

        Args:
            base_url: API URL, ``None`` for the OpenAI default.
            api_key: API key.
            model: Default model name.
            max_tokens: Max response tokens.
            temperature: Sampling temperature, ``None`` for the model default.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def chat_stream(
        self,
        user_message: str,
        context: str,
        grounded: bool = True,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Stream chat response.

        Args:
            user_message: User's question.
            context: Formatted documentation excerpts.
            grounded: Strict grounding prompt when True, broad prompt when False.
            model: Override the default model.

        Yields:
            Response tokens.

        Raises:
            UpstreamServiceError: The completion API failed.
        """
        template = GROUNDED_SYSTEM_PROMPT if grounded else BROAD_SYSTEM_PROMPT
        messages = [
            {"role": "system", "content": template.format(context=context)},
            {"role": "user", "content": user_message},
        ]

        kwargs = {}
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature

        try:
            response = await self._client.chat.completions.create(
                model=model or self._model,
                messages=messages,
                max_completion_tokens=self._max_tokens,
                stream=True,
                **kwargs,
            )

            async for chunk in response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except APIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise UpstreamServiceError("chat", str(e), getattr(e, "status_code", None)) from e
