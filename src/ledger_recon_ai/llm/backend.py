"""
Generation backends for the hosted large language model.
The pipeline only depends on the abstract GenerationBackend contract.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Sequence
import logging

from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    OpenAIError,
)

from ..config import ReconContext
from ..models.ledger import LedgerDocument
from ..utils.exceptions import ConfigurationError, UpstreamGenerationError
from .chunker import LineChunker

logger = logging.getLogger(__name__)


class GenerationBackend(ABC):
    """Abstract prompt-in, text-out model service."""

    @abstractmethod
    def stream(
        self, prompt: str, documents: Sequence[LedgerDocument]
    ) -> AsyncIterator[str]:
        """
        Open one generation request and yield text chunks as they arrive.

        Args:
            prompt: Instruction text
            documents: Documents attached to the request, in order

        Raises:
            UpstreamGenerationError: If the request or its stream fails
        """
        pass

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Run one non-streaming request expecting a JSON object reply.

        Raises:
            UpstreamGenerationError: If the request fails
        """
        pass


class OpenAIBackend(GenerationBackend):
    """
    Backend for any OpenAI-compatible chat completions endpoint.

    PDFs are attached as file content parts carrying base64 data URIs.
    Streamed deltas are regrouped into line chunks by LineChunker.
    """

    def __init__(self, context: ReconContext, client: Optional[AsyncOpenAI] = None):
        self.context = context
        self.llm_config = context.config.llm
        if client is None:
            if not context.api_key:
                raise ConfigurationError(
                    "No model API key configured; set OPENAI_API_KEY or llm.api_key"
                )
            client = AsyncOpenAI(
                api_key=context.api_key,
                base_url=self.llm_config.base_url,
                timeout=self.llm_config.timeout_seconds,
            )
        self.client = client

    async def stream(
        self, prompt: str, documents: Sequence[LedgerDocument]
    ) -> AsyncIterator[str]:
        messages = [{"role": "user", "content": self._content_parts(prompt, documents)}]
        logger.info(
            f"Opening generation stream: model={self.llm_config.model}, "
            f"documents={len(documents)}"
        )

        chunker = LineChunker()
        delta_count = 0
        try:
            response = await self.client.chat.completions.create(
                model=self.llm_config.model,
                messages=messages,
                temperature=self.llm_config.temperature,
                stream=True,
            )
            try:
                async for event in response:
                    if not event.choices:
                        continue
                    delta = event.choices[0].delta.content or ""
                    if not delta:
                        continue
                    delta_count += 1
                    for chunk in chunker.feed(delta):
                        yield chunk
            finally:
                # Releases the HTTP response when the consumer stops early
                await response.close()
        except OpenAIError as e:
            raise UpstreamGenerationError(_describe_error(e)) from e

        for chunk in chunker.flush():
            yield chunk
        logger.debug(f"Generation stream finished after {delta_count} deltas")

    async def complete(self, prompt: str) -> str:
        logger.info(f"Requesting completion: model={self.llm_config.model}")
        try:
            response = await self.client.chat.completions.create(
                model=self.llm_config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.llm_config.temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise UpstreamGenerationError(_describe_error(e)) from e

        if not response.choices:
            raise UpstreamGenerationError("Model returned no choices")
        return response.choices[0].message.content or ""

    def _content_parts(
        self, prompt: str, documents: Sequence[LedgerDocument]
    ) -> list[dict[str, Any]]:
        parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for doc in documents:
            parts.append({"type": "text", "text": f"{doc.label} Ledger:"})
            parts.append(
                {
                    "type": "file",
                    "file": {"filename": doc.filename, "file_data": doc.to_data_uri()},
                }
            )
        return parts


def _describe_error(error: OpenAIError) -> str:
    if isinstance(error, APITimeoutError):
        return "Model request timed out"
    if isinstance(error, APIConnectionError):
        return f"Could not reach the model service: {error}"
    if isinstance(error, APIStatusError):
        return f"Model service returned HTTP {error.status_code}: {error.message}"
    return f"Model request failed: {error}"
