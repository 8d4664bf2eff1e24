"""
Model Gateway - one call to the external completion service per action.

The model is a black box exposing complete(prompt) -> text. Nothing about
the reply's structure is assumed here.

Failure modes:
    - Upstream non-success status  -> UpstreamServiceError(status, details)
    - Transport failure            -> UpstreamServiceError(None, details)
    - Empty / malformed output     -> NO_TEXT_OUTPUT sentinel
No retries, no backoff.
"""

import logging
from typing import Any, Optional

import openai
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4.1-mini"
NO_TEXT_OUTPUT = "No text output returned."


def extract_text(message: Any) -> str:
    """Text content of a chat reply; handles plain strings and content blocks."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") in ("text", "output_text"):
                parts.append(str(block.get("text") or ""))
        return "".join(parts)
    return ""


class ModelGateway:
    """Completion client backed by the OpenAI Responses API."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, llm: Optional[Any] = None):
        self.model = model
        self.llm = llm or ChatOpenAI(
            model=model,
            api_key=api_key,
            use_responses_api=True,
            max_retries=0,
        )

    def complete(self, prompt: str) -> str:
        """Send the prompt; return the reply text or the no-output sentinel."""
        try:
            response = self.llm.invoke([HumanMessage(content=prompt)])
        except openai.APIStatusError as e:
            logger.error("Completion service returned %s", e.status_code)
            details = e.body if e.body is not None else str(e)
            raise UpstreamServiceError(status=e.status_code, details=details) from e
        except openai.APIError as e:
            logger.error("Completion service unreachable: %s", e)
            raise UpstreamServiceError(details=str(e)) from e

        text = extract_text(response).strip()
        if not text:
            logger.warning("Completion service returned no text output")
            return NO_TEXT_OUTPUT
        return text
