"""Language-model capability shared by the classifier, drafting and agents."""

import logging
from typing import Protocol, runtime_checkable

from docpilot.errors import ModelCallError

logger = logging.getLogger(__name__)


@runtime_checkable
class LanguageModel(Protocol):
    """Anything that turns a prompt into text."""

    async def complete(self, prompt: str, *, system: str | None = None) -> str: ...


async def call_model(
    model: LanguageModel,
    prompt: str,
    *,
    system: str | None = None,
    purpose: str = "completion",
) -> str:
    """Run one model call, wrapping transport failures in ModelCallError.

    asyncio.CancelledError is a BaseException and passes through untouched.
    """
    logger.debug("Model call (%s), prompt length %d", purpose, len(prompt))
    try:
        text = await model.complete(prompt, system=system)
    except ModelCallError:
        raise
    except Exception as e:
        logger.warning("Model call failed during %s: %s", purpose, e)
        raise ModelCallError(purpose, e) from e
    return text or ""
