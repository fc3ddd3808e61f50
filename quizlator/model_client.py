"""
Chat-completion client used to generate categories and quiz questions.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from huggingface_hub import AsyncInferenceClient

from .errors import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "meta-llama/Meta-Llama-3-8B-Instruct"

CATEGORY_PROMPT = (
    "STRICT RULES: Give 10 categories in Polish. 5 IT/Tech, 5 General. "
    "Format: cat1,cat2,cat3... No intro. No words before the first category."
)
CATEGORY_MAX_TOKENS = 100

QUESTION_SYSTEM_PROMPT = "You are a quiz bot. Respond ONLY with raw data. No introduction."
QUESTION_USER_PROMPT = (
    "Generate {count} quiz questions about {category} in Polish.\n"
    "Format: Question|OptionA,OptionB,OptionC,OptionD|CorrectOption\n"
    "Example: Stolica Polski?|Warszawa,Kraków,Łódź,Gdańsk|Warszawa"
)
QUESTION_MAX_TOKENS = 1500
QUESTION_TEMPERATURE = 0.6


class ModelClient:
    """Thin wrapper around the Hugging Face chat-completion API."""

    def __init__(
        self,
        token: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        client: Optional[Any] = None
    ):
        """
        Initialize the client.

        Args:
            token: Hugging Face access token (anonymous access if None)
            model: Model repository id used for every request
            timeout: Seconds to wait for a completion
            client: Pre-built inference client, mainly for tests
        """
        self.model = model
        self.timeout = timeout
        self._client = client if client is not None else AsyncInferenceClient(token=token)

    async def generate_categories(self) -> str:
        """
        Ask the model for 10 comma-separated category names.

        Returns:
            Raw completion text

        Raises:
            FetchFailure: If the request fails or returns no text
        """
        messages = [{"role": "user", "content": CATEGORY_PROMPT}]
        return await self._complete("categories", messages, max_tokens=CATEGORY_MAX_TOKENS)

    async def generate_questions(self, category: str, count: int) -> str:
        """
        Ask the model for pipe-delimited quiz questions about a category.

        Args:
            category: Category label chosen by the player
            count: Number of questions requested

        Returns:
            Raw completion text

        Raises:
            FetchFailure: If the request fails or returns no text
        """
        messages = [
            {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
            {"role": "user", "content": QUESTION_USER_PROMPT.format(count=count, category=category)},
        ]
        return await self._complete(
            "questions",
            messages,
            max_tokens=QUESTION_MAX_TOKENS,
            temperature=QUESTION_TEMPERATURE
        )

    async def _complete(
        self,
        request_kind: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None
    ) -> str:
        kwargs: Dict[str, Any] = {"model": self.model, "max_tokens": max_tokens}
        if temperature is not None:
            kwargs["temperature"] = temperature

        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._client.chat_completion(messages, **kwargs),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Model request '{request_kind}' timed out after {self.timeout}s")
            raise FetchFailure(f"Model request timed out after {self.timeout}s")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Model request '{request_kind}' failed: {e}",
                extra={
                    'event_type': 'model_request_failed',
                    'request_kind': request_kind,
                    'model': self.model,
                    'error_type': type(e).__name__,
                }
            )
            raise FetchFailure(f"Model request failed: {e}") from e

        content = self._extract_content(response)
        if not content:
            logger.error(f"Model request '{request_kind}' returned no text")
            raise FetchFailure("Model returned an empty response")

        logger.info(
            f"Model request '{request_kind}' completed in {time.time() - start_time:.2f}s",
            extra={
                'event_type': 'model_request_completed',
                'request_kind': request_kind,
                'model': self.model,
                'response_length': len(content),
            }
        )
        return content

    @staticmethod
    def _extract_content(response: Any) -> Optional[str]:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            return None
        return content if isinstance(content, str) else None

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if asyncio.iscoroutine(result):
            await result
