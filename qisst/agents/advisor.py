"""
Committee Advisor

DESIGN DECISION: The advisor is a thin bridge to Gemini because:
1. The organizer asks free-form questions ("how do I handle a late payer?")
2. A short summary of the committee grounds the answer
3. Nothing the model says is ever written back to the books

CRITICAL BOUNDARIES:
- CAN: Read a summary of settings, members and cycles
- CANNOT: Mutate members, cycles, payments or settings
- NEVER raises to the caller; every failure becomes a polite message

The LLM is an ADVISOR, not a BOOKKEEPER.
"""

import asyncio
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog

from qisst.config import GeminiSettings, get_settings
from qisst.models.committee import CommitteeSettings, Cycle, Member


logger = structlog.get_logger(__name__)


NO_API_KEY_MESSAGE = "Please configure the API Key to use the AI Advisor."
EMPTY_RESPONSE_MESSAGE = "I couldn't generate a response at this time."
CONNECTION_ERROR_MESSAGE = (
    "Sorry, I am having trouble connecting to the advice service right now."
)
FALLBACK_MESSAGES = frozenset({
    NO_API_KEY_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    CONNECTION_ERROR_MESSAGE,
})


class AdvisoryUnavailable(Exception):
    """The advice service could not produce an answer."""

    def __init__(self, fallback: str, reason: Optional[str] = None):
        self.fallback = fallback
        self.reason = reason
        super().__init__(reason or fallback)


def build_prompt(
    query: str,
    settings: CommitteeSettings,
    members: Sequence[Member],
    cycles: Sequence[Cycle],
) -> str:
    """Compose the grounding context and the organizer's question."""
    receivers = ", ".join(m.name for m in members if m.has_received_pot) or "None"

    return f"""You are an expert financial advisor specifically for informal savings circles (ROSCA/Committee/Qisst).

Current Committee Data:
- Name: {settings.committee_name}
- Installment Amount: {settings.currency} {settings.installment_amount}
- Frequency: {settings.frequency.value}
- Total Members: {len(members)}
- Members who have already received the pot: {receivers}
- Current Cycle Count: {len(cycles)}

User Query: {query}

Provide a helpful, polite, and professional answer. Keep it concise."""


def normalize_query(query: str) -> str:
    """Collapse whitespace and case so repeated clicks share one request."""
    return " ".join(query.split()).lower()


class CommitteeAdvisor:
    """
    Answers organizer questions about their committee.

    Concurrent calls asking the same question share one in-flight
    request. Once it resolves, the next call issues a fresh one.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model
        self._in_flight: dict[str, asyncio.Task] = {}

        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    async def ask(
        self,
        query: str,
        settings: CommitteeSettings,
        members: Sequence[Member],
        cycles: Sequence[Cycle],
    ) -> str:
        """
        Ask for advice about the committee.

        Returns:
            The model's answer, or a fallback message when no answer
            could be produced
        """
        key = normalize_query(query)
        task = self._in_flight.get(key)

        if task is None:
            prompt = build_prompt(query, settings, members, cycles)
            task = asyncio.ensure_future(self._answer(prompt))
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))

        # A caller giving up must not cancel the request others are waiting on
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _answer(self, prompt: str) -> str:
        try:
            return await self._generate(prompt)
        except AdvisoryUnavailable as e:
            logger.warning("advice_unavailable", reason=e.reason)
            return e.fallback

    async def _generate(self, prompt: str) -> str:
        if self._model is None:
            raise AdvisoryUnavailable(NO_API_KEY_MESSAGE, "api key not configured")

        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            raise AdvisoryUnavailable(CONNECTION_ERROR_MESSAGE, str(e)) from e

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates have no text part
            raise AdvisoryUnavailable(EMPTY_RESPONSE_MESSAGE, str(e)) from e

        if not text or not text.strip():
            raise AdvisoryUnavailable(EMPTY_RESPONSE_MESSAGE, "empty response")

        return text
