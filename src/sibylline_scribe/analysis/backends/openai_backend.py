"""OpenAI chat-completions analysis backend."""

from __future__ import annotations

import logging

import httpx
from openai import AsyncOpenAI, OpenAIError

from ...config import ScribeConfig
from ...errors import AnalysisServiceError
from .. import prompts
from ..parsing import Malformed, parse_metrics_payload, parse_span_payload
from ..spans import ReadabilityMetrics, TextSpan
from .base import AnalysisService, validate_text

logger = logging.getLogger(__name__)


class OpenAIAnalysisService(AnalysisService):
    """Analysis backed by an OpenAI chat model.

    Models, temperatures and token limits come from the ``analysis`` config
    section. The API key is read by the OpenAI client from
    ``OPENAI_API_KEY`` (a ``.env`` file in the working directory is honoured).
    """

    def __init__(
        self,
        config: ScribeConfig | None = None,
        client: AsyncOpenAI | None = None,
        **kwargs,
    ):
        settings = (config or ScribeConfig()).analysis
        settings.update(kwargs)

        self._model = settings.get("model", "gpt-4o-mini")
        self._readability_model = settings.get("readability_model", self._model)
        self._rewrite_model = settings.get("rewrite_model", self._model)
        self._temperature = float(settings.get("temperature", 0.1))
        self._rewrite_temperature = float(settings.get("rewrite_temperature", 0.7))
        self._max_tokens = int(settings.get("max_tokens", 2000))
        self._readability_max_tokens = int(settings.get("readability_max_tokens", 500))
        self._max_text_length = settings.get("max_text_length")
        self._timeout = float(settings.get("timeout_seconds", 60))
        self._client = client

    @classmethod
    def name(cls) -> str:
        return "openai"

    def _ensure_client(self) -> AsyncOpenAI:
        """Lazy-create the API client on first use."""
        if self._client is None:
            from dotenv import load_dotenv

            load_dotenv()
            timeout = httpx.Timeout(self._timeout, connect=10.0)
            self._client = AsyncOpenAI(timeout=timeout)
        return self._client

    async def _complete(
        self,
        model: str,
        system_prompt: str,
        user_content: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        client = self._ensure_client()
        try:
            completion = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except (OpenAIError, httpx.HTTPError) as exc:
            logger.error("Analysis request to %s failed: %s", model, exc)
            raise AnalysisServiceError("Failed to get response from AI") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            logger.error("Empty response from %s", model)
            raise AnalysisServiceError("Failed to get response from AI")
        return content

    async def proofread(self, text: str) -> list[TextSpan]:
        validate_text(text, self._max_text_length)
        logger.info("Proofreading text of length %d", len(text))

        payload = await self._complete(
            self._model,
            prompts.PROOFREAD_PROMPT,
            text,
            self._temperature,
            self._max_tokens,
        )
        result = parse_span_payload(payload)
        if isinstance(result, Malformed):
            raise AnalysisServiceError(f"Invalid response format from AI: {result.reason}")

        logger.info("Proofread completed, found %d issues", len(result.value))
        return result.value

    async def readability(self, text: str) -> ReadabilityMetrics:
        validate_text(text, self._max_text_length)
        logger.info("Analyzing readability for text of length %d", len(text))

        payload = await self._complete(
            self._readability_model,
            prompts.READABILITY_PROMPT,
            text,
            self._temperature,
            self._readability_max_tokens,
        )
        result = parse_metrics_payload(payload)
        if isinstance(result, Malformed):
            raise AnalysisServiceError(f"Invalid response format from AI: {result.reason}")
        return result.value

    async def rewrite(self, text: str, writing_sample: str) -> str:
        validate_text(text, self._max_text_length)
        validate_text(writing_sample, label="Writing sample")
        logger.info(
            "Rewriting text of length %d with writing sample of length %d",
            len(text),
            len(writing_sample),
        )

        rewritten = await self._complete(
            self._rewrite_model,
            prompts.REWRITE_PROMPT,
            prompts.rewrite_user_message(text, writing_sample),
            self._rewrite_temperature,
            self._max_tokens,
        )
        return rewritten.strip()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
