"""
Language generation collaborator (OpenAI chat model via langchain-openai).
"""

import asyncio
from typing import Any, TypeVar

from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field, ValidationError

from vintellitour.agents.prompts import ASSISTANT_SYSTEM
from vintellitour.core.config import OPENAI_API_KEY, OPENAI_MODEL, TOOL_TIMEOUT_SECONDS
from vintellitour.core.errors import UpstreamError
from vintellitour.core.logger import get_logger
from vintellitour.models.conversation import Intent

log = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class IntentChoice(BaseModel):
    intent: Intent = Field(description="One of the allowed intent values")
    reason: str = Field(default="", description="Short justification")


class LanguageModel:
    """
    `generate(prompt) -> text` plus structured output for classification and
    itinerary drafts. Every failure, including a timeout, is an UpstreamError.
    """

    def __init__(self, llm: Any = None, timeout: float = TOOL_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self._llm_unavailable_reason = ""
        if llm is None:
            if OPENAI_API_KEY:
                llm = ChatOpenAI(
                    model=OPENAI_MODEL,
                    temperature=0.3,
                    api_key=OPENAI_API_KEY,
                    max_retries=0,
                )
            else:
                self._llm_unavailable_reason = "No API key found in OPENAI_API_KEY"
        self.llm = llm

    @property
    def available(self) -> bool:
        return self.llm is not None

    async def _run(self, awaitable, what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning("LLM %s timed out after %ss", what, self.timeout)
            raise UpstreamError(f"LLM {what} timed out")
        except UpstreamError:
            raise
        except Exception as e:
            log.warning("LLM %s failed: %s: %s", what, type(e).__name__, e)
            raise UpstreamError(f"LLM {what} failed: {type(e).__name__}: {e}")

    def _require_llm(self) -> None:
        if self.llm is None:
            raise UpstreamError(f"LLM unavailable: {self._llm_unavailable_reason}")

    async def generate(self, prompt: str, system: str = ASSISTANT_SYSTEM) -> str:
        self._require_llm()
        result = await self._run(
            self.llm.ainvoke([("system", system), ("user", prompt)]),
            "generation",
        )
        content = getattr(result, "content", result)
        if isinstance(content, list):
            content = "\n".join(
                part.get("text", "") for part in content if isinstance(part, dict) and part.get("type") == "text"
            )
        return str(content or "").strip()

    async def structured(self, schema: type[SchemaT], prompt: str, system: str) -> SchemaT:
        self._require_llm()
        runnable = self.llm.with_structured_output(schema)
        result = await self._run(
            runnable.ainvoke([("system", system), ("user", prompt)]),
            f"structured output ({schema.__name__})",
        )
        if isinstance(result, dict):
            try:
                result = schema.model_validate(result)
            except ValidationError as e:
                raise UpstreamError(f"LLM output does not match {schema.__name__}: {e}")
        if not isinstance(result, schema):
            raise UpstreamError(f"LLM returned {type(result).__name__}, expected {schema.__name__}")
        return result


__all__ = ["IntentChoice", "LanguageModel"]
