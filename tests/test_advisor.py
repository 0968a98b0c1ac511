"""
Tests for the committee advisor.

A fake model stands in for Gemini; no API calls are made.
"""

import asyncio
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from qisst.agents import (
    CONNECTION_ERROR_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    NO_API_KEY_MESSAGE,
    CommitteeAdvisor,
    build_prompt,
    normalize_query,
)
from qisst.config import GeminiSettings
from qisst.models.committee import (
    CommitteeSettings,
    Cycle,
    Frequency,
    Member,
)


RECEIVED = datetime(2024, 1, 20, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, text):
        self._text = text

    @property
    def text(self):
        if isinstance(self._text, Exception):
            raise self._text
        return self._text


class FakeModel:
    """Records prompts and returns a canned answer."""

    def __init__(self, answer="Keep a fixed collection day.", error=None, gate=None):
        self.answer = answer
        self.error = error
        self.gate = gate
        self.calls = 0
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.calls += 1
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return FakeResponse(self.answer)


@pytest.fixture
def committee():
    settings = CommitteeSettings(
        committee_name="Office Qisst",
        installment_amount=Decimal("5000"),
        currency="PKR",
        frequency=Frequency.MONTHLY,
    )
    members = [
        Member(id="m1", name="Ayesha", has_received_pot=True, received_date=RECEIVED),
        Member(id="m2", name="Bilal", has_received_pot=True, received_date=RECEIVED),
        Member(id="m3", name="Sana"),
    ]
    cycles = [
        Cycle(id="c2", label="Month 2", start_date=RECEIVED, winner_id="m2", is_completed=True),
        Cycle(id="c1", label="Month 1", start_date=RECEIVED, winner_id="m1", is_completed=True),
    ]
    return settings, members, cycles


def no_key():
    return GeminiSettings(api_key=None)


class TestPrompt:
    """Tests for the grounding prompt."""

    def test_prompt_contains_committee_data(self, committee):
        """Test the committee summary in the prompt."""
        prompt = build_prompt("Is this fair?", *committee)
        assert "Name: Office Qisst" in prompt
        assert "Installment Amount: PKR 5000" in prompt
        assert "Frequency: MONTHLY" in prompt
        assert "Total Members: 3" in prompt
        assert "already received the pot: Ayesha, Bilal" in prompt
        assert "Current Cycle Count: 2" in prompt
        assert "User Query: Is this fair?" in prompt
        assert "Keep it concise." in prompt

    def test_prompt_without_receivers(self):
        """Test that no receivers reads as None."""
        prompt = build_prompt("Hi", CommitteeSettings(), [Member(name="Sana")], [])
        assert "already received the pot: None" in prompt

    def test_normalize_query(self):
        """Test whitespace and case folding."""
        assert normalize_query("  Who   is NEXT? ") == "who is next?"


class TestFallbacks:
    """Tests for answers when the service can't help."""

    def test_no_api_key(self, committee):
        """Test the message without an API key."""
        advisor = CommitteeAdvisor(no_key())
        assert advisor.is_available is False
        answer = asyncio.run(advisor.ask("Hello", *committee))
        assert answer == NO_API_KEY_MESSAGE

    def test_empty_response(self, committee):
        """Test the message for an empty answer."""
        advisor = CommitteeAdvisor(no_key(), model=FakeModel(answer="   "))
        assert asyncio.run(advisor.ask("Hello", *committee)) == EMPTY_RESPONSE_MESSAGE

    def test_blocked_response(self, committee):
        """Test the message when the response has no text part."""
        model = FakeModel(answer=ValueError("no candidates"))
        advisor = CommitteeAdvisor(no_key(), model=model)
        assert asyncio.run(advisor.ask("Hello", *committee)) == EMPTY_RESPONSE_MESSAGE

    def test_transport_error(self, committee):
        """Test the message when the call fails."""
        model = FakeModel(error=RuntimeError("timeout"))
        advisor = CommitteeAdvisor(no_key(), model=model)
        assert asyncio.run(advisor.ask("Hello", *committee)) == CONNECTION_ERROR_MESSAGE

    def test_answer_passed_through(self, committee):
        """Test that a real answer is returned exactly as the model wrote it."""
        advisor = CommitteeAdvisor(no_key(), model=FakeModel(answer="  Be fair.\n"))
        assert asyncio.run(advisor.ask("Hello", *committee)) == "  Be fair.\n"


class TestInFlightSharing:
    """Tests for sharing one request between identical concurrent questions."""

    def test_concurrent_same_query_shares_request(self, committee):
        """Test that two identical questions cause one call."""

        async def scenario():
            gate = asyncio.Event()
            model = FakeModel(answer="Shared answer", gate=gate)
            advisor = CommitteeAdvisor(no_key(), model=model)

            first = asyncio.ensure_future(advisor.ask("Who is next?", *committee))
            second = asyncio.ensure_future(advisor.ask("who is  next?", *committee))
            await asyncio.sleep(0)
            gate.set()
            return model, await asyncio.gather(first, second)

        model, answers = asyncio.run(scenario())
        assert model.calls == 1
        assert answers == ["Shared answer", "Shared answer"]

    def test_different_queries_not_shared(self, committee):
        """Test that different questions get their own calls."""

        async def scenario():
            model = FakeModel()
            advisor = CommitteeAdvisor(no_key(), model=model)
            await asyncio.gather(
                advisor.ask("Question one", *committee),
                advisor.ask("Question two", *committee),
            )
            return model

        assert asyncio.run(scenario()).calls == 2

    def test_new_request_after_resolution(self, committee):
        """Test that a repeated question after completion asks again."""

        async def scenario():
            model = FakeModel()
            advisor = CommitteeAdvisor(no_key(), model=model)
            await advisor.ask("Who is next?", *committee)
            await advisor.ask("Who is next?", *committee)
            return model, advisor

        model, advisor = asyncio.run(scenario())
        assert model.calls == 2
        assert advisor._in_flight == {}

    def test_advisor_never_mutates(self, committee):
        """Test that the collections are untouched."""
        settings, members, cycles = committee
        before = ([m.model_copy() for m in members], [c.model_copy() for c in cycles])
        advisor = CommitteeAdvisor(no_key(), model=FakeModel())
        asyncio.run(advisor.ask("Anything", settings, members, cycles))
        assert (members, cycles) == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
