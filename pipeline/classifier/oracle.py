"""Classification oracle: one LLM round trip per site, JSON in and out.

Providers
---------
``openai`` (default)
    ``langchain_openai.ChatOpenAI`` bound to ``response_format=json_object``.
    Requires ``OPENAI_API_KEY``.  Configure via ``OPENAI_CHAT_MODEL``.

``ollama``
    ``langchain_ollama.ChatOllama`` in JSON mode.
    Configure via ``OLLAMA_BASE_URL`` and ``OLLAMA_CHAT_MODEL``.

The oracle's reply is untrusted: :func:`parse_judgment` validates it with
pydantic and raises :class:`~pipeline.errors.ParseError` on anything that
does not fit the schema.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Protocol

import pydantic
from pydantic import BaseModel, Field, field_validator

from pipeline.classifier.prompt import SYSTEM_PROMPT
from pipeline.config import Settings
from pipeline.errors import ParseError, ProviderError
from pipeline.models import CONFIDENCE_LEVELS, Outcome

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ClassificationOracle(Protocol):
    async def judge(self, prompt: str) -> Outcome[str]: ...


# ---------------------------------------------------------------------------
# Response schema
# ---------------------------------------------------------------------------

class Judgment(BaseModel):
    """Fields the oracle must (or may) return."""

    accepts_visa: bool
    sells_adderall: bool
    is_licensed_pharmacy: bool
    visa_evidence: str = "Not provided"
    adderall_evidence: str = "Not provided"
    license_evidence: str = "Not provided"
    is_violation: bool | None = None
    confidence: str = "low"
    risk_score: float = Field(0, allow_inf_nan=False)
    reasoning: str = ""
    needs_manual_review: bool = True

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalise_confidence(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in CONFIDENCE_LEVELS else "low"

    @field_validator("risk_score", mode="before")
    @classmethod
    def _default_risk(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("visa_evidence", "adderall_evidence", "license_evidence", "reasoning", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return "; ".join(str(v) for v in value)
        return str(value)


def parse_judgment(raw: str) -> Judgment:
    """Parse the oracle's reply into a :class:`Judgment`.

    Markdown code fences around the JSON are tolerated.

    Raises:
        ParseError: Empty reply, invalid JSON, a non-object payload, or a
            missing/ill-typed required field.
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    if not text:
        raise ParseError("Empty response from classification oracle")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON from classification oracle: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return Judgment.model_validate(data)
    except pydantic.ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ParseError(f"Judgment failed validation ({fields})") from exc


# ---------------------------------------------------------------------------
# LangChain oracle
# ---------------------------------------------------------------------------

def _get_llm(settings: Settings) -> Any:
    """Return a configured LangChain chat model in JSON-only mode."""
    if settings.llm_provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=settings.ollama_chat_model,
            base_url=settings.ollama_base_url,
            temperature=settings.classify_temperature,
            format="json",
        )

    from langchain_openai import ChatOpenAI

    llm = ChatOpenAI(
        model=settings.openai_chat_model,
        api_key=settings.openai_api_key,
        temperature=settings.classify_temperature,
        timeout=settings.classify_timeout,
    )
    return llm.bind(response_format={"type": "json_object"})


class LangChainOracle:
    """Send one prompt, get one JSON string back (or a failure)."""

    def __init__(self, settings: Settings, llm: Any | None = None) -> None:
        self._settings = settings
        self._llm = llm

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = _get_llm(self._settings)
        return self._llm

    async def judge(self, prompt: str) -> Outcome[str]:
        from langchain_core.messages import HumanMessage, SystemMessage

        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(messages), self._settings.classify_timeout
            )
        except asyncio.TimeoutError:
            return Outcome.failure(
                ProviderError("oracle", f"Timed out after {self._settings.classify_timeout:g}s")
            )
        except Exception as exc:  # noqa: BLE001
            return Outcome.failure(ProviderError("oracle", str(exc) or repr(exc)))

        content = response.content if hasattr(response, "content") else str(response)
        if not isinstance(content, str):
            content = json.dumps(content) if isinstance(content, dict) else str(content)
        return Outcome.success(content)
