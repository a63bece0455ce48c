"""Reading generation with offline fallback.

Draw cards, build the prompt, ask the completion API once. Any failure
(error result or exception) turns into a locally rendered reading built
from the same cards, flagged ``isOffline``. Callers always get a reading.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence, Union

from .cards import get_catalog
from .completion import CompletionResult
from .config import OracleConfig
from .models import Card, QuickReading, Reading
from .prompts import build_full_prompt, build_quick_prompt
from .utils.rng import draw_independent

log = logging.getLogger("oracle.pipeline")

FULL_CARD_COUNT = 3
QUICK_CARD_COUNT = 1


class Completer(Protocol):
    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> CompletionResult:
        ...


@dataclass(frozen=True)
class Succeeded:
    reading: Union[Reading, QuickReading]


@dataclass(frozen=True)
class FellBack:
    reading: Union[Reading, QuickReading]
    reason: str


ReadingOutcome = Union[Succeeded, FellBack]


def iso_timestamp(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -------------------------------------------------------------------
# FALLBACK (NO AI)
# -------------------------------------------------------------------

def fallback_reading_text(question: str, cards: Sequence[Card]) -> str:
    paragraphs = [f'I sense your energy reaching across the veil with the question: "{question}"']

    last = len(cards) - 1
    for i, card in enumerate(cards):
        meaning = card.meaning.lower()
        if i == 0:
            paragraphs.append(
                f"The cosmos has drawn {card.name}, revealing {meaning}. "
                "This card speaks to the foundation of your current situation."
            )
        elif i == last:
            paragraphs.append(
                f"Finally, {card.name} illuminates your path forward with {meaning}. "
                "Trust in the wisdom these cards offer."
            )
        else:
            paragraphs.append(
                f"{card.name} appears in the present position, indicating {meaning}. "
                "The energies surrounding you now are shifting."
            )

    paragraphs.append(
        "The universe speaks through these ancient symbols. Meditate upon their message, "
        "for within their imagery lies the guidance you seek. "
        "Remember, dear seeker, you hold the power to shape your destiny."
    )
    return "\n\n".join(paragraphs)


def fallback_quick_text(card: Card) -> str:
    return f"The {card.name} appears, speaking of {card.meaning.lower()}. Trust in this guidance, seeker."


# -------------------------------------------------------------------
# PIPELINE
# -------------------------------------------------------------------

class ReadingPipeline:
    """Idle -> Drawing -> Prompting -> Requesting -> Succeeded | FellBack.

    No lock is held; concurrent calls are independent.
    """

    def __init__(
        self,
        completion: Completer,
        config: Optional[OracleConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.completion = completion
        self.config = config or OracleConfig()
        self.rng = rng
        self.clock = clock

    def draw(self, count: int) -> List[Card]:
        return draw_independent(get_catalog(), count, self.rng)

    def run_full(self, question: str, cards: Optional[Sequence[Card]] = None) -> ReadingOutcome:
        drawn = list(cards) if cards else self.draw(FULL_CARD_COUNT)
        prompt = build_full_prompt(question, drawn)

        result = self._request(prompt.system, prompt.user, self.config.max_tokens)
        if isinstance(result, str):
            log.warning("Full reading fell back to offline text: %s", result)
            return FellBack(
                reading=Reading(
                    reading=fallback_reading_text(question, drawn),
                    cards=drawn,
                    timestamp=iso_timestamp(self.clock()),
                    question=question,
                    is_offline=True,
                ),
                reason=result,
            )

        return Succeeded(
            reading=Reading(
                reading=result.text,
                cards=drawn,
                timestamp=iso_timestamp(self.clock()),
                question=question,
            )
        )

    def run_quick(self, question: str) -> ReadingOutcome:
        card = self.draw(QUICK_CARD_COUNT)[0]
        prompt = build_quick_prompt(question, card)

        result = self._request(prompt.system, prompt.user, self.config.quick_max_tokens)
        if isinstance(result, str):
            log.warning("Quick reading fell back to offline text: %s", result)
            return FellBack(
                reading=QuickReading(
                    reading=fallback_quick_text(card),
                    card=card,
                    timestamp=iso_timestamp(self.clock()),
                    question=question,
                    is_offline=True,
                ),
                reason=result,
            )

        return Succeeded(
            reading=QuickReading(
                reading=result.text,
                card=card,
                timestamp=iso_timestamp(self.clock()),
                question=question,
            )
        )

    def generate(self, question: str, cards: Optional[Sequence[Card]] = None) -> Reading:
        return self.run_full(question, cards).reading

    def generate_quick_reading(self, question: str) -> QuickReading:
        return self.run_quick(question).reading

    def _request(self, system_prompt: str, user_prompt: str, max_tokens: int) -> Union[CompletionResult, str]:
        """Return the successful result, or a string describing why it failed."""
        try:
            result = self.completion.complete(system_prompt, user_prompt, max_tokens, self.config.temperature)
            if not result.ok:
                return str(result.error) if result.error else "empty_response: no text"
        except Exception as e:
            log.exception("Completion request raised")
            return f"{type(e).__name__}: {e}"
        return result
