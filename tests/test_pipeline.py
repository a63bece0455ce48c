"""Reading pipeline: success shape, fallback behavior, card handling."""

from datetime import datetime

import httpx

from oracle.cards import get_card, get_catalog
from oracle.completion import CompletionClient
from oracle.config import OracleConfig
from oracle.pipeline import (
    FellBack,
    ReadingPipeline,
    Succeeded,
    fallback_quick_text,
    fallback_reading_text,
    iso_timestamp,
)
from oracle.utils.rng import seeded_random

from conftest import StubCompletion


def _parse_iso(ts):
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


class TestFullReading:
    def test_success_shape(self, ok_completion, clock):
        pipeline = ReadingPipeline(ok_completion, clock=clock)
        reading = pipeline.generate("Will I find love?")

        assert reading.reading == "The cards speak clearly."
        assert reading.question == "Will I find love?"
        assert len(reading.cards) == 3
        assert reading.is_offline is False
        assert reading.timestamp == "2026-10-18T12:00:00.000Z"
        _parse_iso(reading.timestamp)

        payload = reading.model_dump(by_alias=True)
        assert payload["isOffline"] is False
        assert set(payload) == {"reading", "cards", "timestamp", "question", "isOffline"}

    def test_success_uses_full_reading_policy(self, ok_completion):
        ReadingPipeline(ok_completion).generate("q")

        assert len(ok_completion.calls) == 1
        call = ok_completion.calls[0]
        assert call["max_tokens"] == 1000
        assert call["temperature"] == 0.7

    def test_prompt_carries_drawn_cards_in_order(self, ok_completion):
        reading = ReadingPipeline(ok_completion, rng=seeded_random("order")).generate("q")

        user = ok_completion.calls[0]["user"]
        for i, card in enumerate(reading.cards, start=1):
            assert f"{i}. {card.name} ({card.suit}) - {card.meaning}" in user

    def test_outcome_is_tagged(self, ok_completion, failing_completion):
        assert isinstance(ReadingPipeline(ok_completion).run_full("q"), Succeeded)

        outcome = ReadingPipeline(failing_completion).run_full("q")
        assert isinstance(outcome, FellBack)
        assert "503" in outcome.reason

    def test_error_result_falls_back(self, failing_completion):
        reading = ReadingPipeline(failing_completion).generate("test question")

        assert reading.is_offline is True
        assert len(reading.cards) == 3
        assert reading.reading
        for card in reading.cards:
            assert card.name in reading.reading
        assert reading.model_dump(by_alias=True)["isOffline"] is True

    def test_exception_falls_back(self):
        completion = StubCompletion(exc=RuntimeError("network layer exploded"))
        outcome = ReadingPipeline(completion).run_full("test question")

        assert isinstance(outcome, FellBack)
        assert outcome.reading.is_offline is True
        assert "RuntimeError" in outcome.reason

    def test_bad_completion_object_falls_back(self):
        completion = StubCompletion(result=None)
        reading = ReadingPipeline(completion).generate("q")
        assert reading.is_offline is True

    def test_fallback_uses_same_cards(self, failing_completion):
        pipeline = ReadingPipeline(failing_completion, rng=seeded_random("same-cards"))
        reading = pipeline.generate("q")

        prompt_user = failing_completion.calls[0]["user"]
        for card in reading.cards:
            assert card.name in prompt_user
        assert reading.reading == fallback_reading_text("q", reading.cards)

    def test_given_cards_are_used(self, ok_completion):
        cards = [get_card("The Sun"), get_card("Death"), get_card("The Sun")]
        reading = ReadingPipeline(ok_completion).generate("q", cards=cards)
        assert [c.name for c in reading.cards] == ["The Sun", "Death", "The Sun"]

    def test_timeout_scenario(self):
        """A transport timeout yields an offline reading echoing the question."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        completion = CompletionClient(
            OracleConfig(api_key="sk-test", base_url="https://llm.example.test/v1"),
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        question = "What does my future hold?"
        reading = ReadingPipeline(completion).generate(question)

        catalog_names = {c.name for c in get_catalog()}
        assert reading.is_offline is True
        assert reading.question == question
        assert len(reading.cards) == 3
        for card in reading.cards:
            assert card.name in catalog_names
            assert card.name in reading.reading


class TestQuickReading:
    def test_success(self, ok_completion, clock):
        reading = ReadingPipeline(ok_completion, clock=clock).generate_quick_reading("Should I go?")

        assert reading.reading == "The cards speak clearly."
        assert reading.card.name in {c.name for c in get_catalog()}
        assert reading.is_offline is False
        assert ok_completion.calls[0]["max_tokens"] == 200
        assert ok_completion.calls[0]["temperature"] == 0.7
        assert reading.card.name in ok_completion.calls[0]["user"]

    def test_single_card_only(self, ok_completion):
        payload = ReadingPipeline(ok_completion).generate_quick_reading("q").model_dump(by_alias=True)
        assert "cards" not in payload
        assert isinstance(payload["card"], dict)

    def test_fallback_embeds_same_card(self, failing_completion):
        outcome = ReadingPipeline(failing_completion).run_quick("Should I go?")

        assert isinstance(outcome, FellBack)
        reading = outcome.reading
        assert reading.is_offline is True
        assert reading.card.name in reading.reading
        assert reading.card.meaning.lower() in reading.reading
        assert reading.card.name in failing_completion.calls[0]["user"]

    def test_exception_falls_back(self):
        reading = ReadingPipeline(StubCompletion(exc=TimeoutError("slow"))).generate_quick_reading("q")
        assert reading.is_offline is True
        assert reading.reading == fallback_quick_text(reading.card)


def test_fallback_text_template():
    cards = [get_card("The Fool"), get_card("Ace of Cups"), get_card("The Tower")]
    text = fallback_reading_text("Will it rain?", cards)
    paragraphs = text.split("\n\n")

    assert paragraphs[0] == 'I sense your energy reaching across the veil with the question: "Will it rain?"'
    assert paragraphs[1].startswith("The cosmos has drawn The Fool, revealing new beginnings, innocence, spontaneity.")
    assert paragraphs[2].startswith("Ace of Cups appears in the present position, indicating love,")
    assert paragraphs[3].startswith("Finally, The Tower illuminates your path forward with sudden change,")
    assert paragraphs[4].endswith("you hold the power to shape your destiny.")


def test_fallback_text_single_card():
    text = fallback_reading_text("q", [get_card("The Moon")])
    assert "The cosmos has drawn The Moon" in text
    assert "Finally" not in text


def test_iso_timestamp_naive_is_utc():
    assert iso_timestamp(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05.000Z"

