"""Prompt construction for Oracle readings.

Prompts are plain string interpolation: the same question and the same
ordered cards always give byte-identical text.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

from .models import Card

FULL_SYSTEM_PROMPT = (
    "You are the Oracle, an ancient mystical tarot reader who speaks with wisdom and mystical insight. "
    "Always stay in character as a mystical oracle."
)

QUICK_SYSTEM_PROMPT = "You are the Oracle. Give brief, mystical responses."


class Prompt(NamedTuple):
    system: str
    user: str


def _card_line(index: int, card: Card) -> str:
    return f"{index}. {card.name} ({card.suit}) - {card.meaning}"


def build_full_prompt(question: str, cards: Sequence[Card]) -> Prompt:
    card_lines = "\n".join(_card_line(i, c) for i, c in enumerate(cards, start=1))

    user = f"""You are the Oracle, a mystical tarot reader with ancient wisdom.

A seeker has come to you with this question: "{question}"

The cards drawn for this reading are:
{card_lines}

Provide a mystical, insightful tarot reading that:
- Addresses their specific question
- Interprets each card in context of their question
- Weaves the cards together into a coherent narrative
- Offers guidance and wisdom
- Uses mystical, oracle-like language but remains accessible
- Is 3-4 paragraphs long

Speak as the Oracle in first person. Begin with "I see..." or "The cards reveal..." or similar mystical opening."""

    return Prompt(system=FULL_SYSTEM_PROMPT, user=user)


def build_quick_prompt(question: str, card: Card) -> Prompt:
    user = f"""You are the Oracle. Someone asks: "{question}"

The card drawn is: {card.name} - {card.meaning}

Give a brief, mystical response (2-3 sentences) that interprets this card in relation to their question. Speak as the Oracle."""

    return Prompt(system=QUICK_SYSTEM_PROMPT, user=user)
