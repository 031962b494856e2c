"""Shared reply handling for the structured insight requests."""

from typing import Type, TypeVar
import json
import logging

from pydantic import BaseModel, ValidationError

from ..llm.backend import GenerationBackend
from ..utils.exceptions import InsightError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def request_structured(
    backend: GenerationBackend, prompt: str, model_cls: Type[ModelT]
) -> ModelT:
    """
    Send a prompt expecting one JSON object and validate the reply.

    Raises:
        InsightError: If the reply is not valid JSON or fails validation
        UpstreamGenerationError: If the model call itself fails
    """
    reply = (await backend.complete(prompt)).strip()
    if not reply:
        raise InsightError("The model returned an empty reply")

    try:
        payload = json.loads(reply)
    except ValueError as e:
        logger.debug(f"Unparseable reply: {reply[:200]}")
        raise InsightError(f"The model reply is not valid JSON: {e}") from e

    try:
        return model_cls.model_validate(payload)
    except ValidationError as e:
        raise InsightError(f"The model reply does not match {model_cls.__name__}: {e}") from e
