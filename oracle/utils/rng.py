"""RNG helpers for card draws.

Production draws use the module-level ``random`` state; a seeded
``random.Random`` can be passed anywhere a draw happens to make it
reproducible.
"""

import hashlib
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def seeded_random(seed: str, salt: str = "") -> random.Random:
    """Create a deterministic random.Random instance from seed and optional salt.

    Args:
        seed: Base seed string
        salt: Optional salt to modify the seed (e.g., a session id)

    Returns:
        random.Random instance that will produce deterministic sequences
    """
    combined = f"{seed}{salt}"
    hash_obj = hashlib.sha256(combined.encode('utf-8'))
    int_seed = int(hash_obj.hexdigest(), 16)

    # Mask to fit within Python's random seed range
    int_seed = int_seed & ((1 << 31) - 1)

    return random.Random(int_seed)


def draw_independent(items: Sequence[T], count: int, rng: Optional[random.Random] = None) -> List[T]:
    """Draw ``count`` items uniformly and independently (with replacement).

    Repeats are possible; this is not a shuffled-deck draw.

    Raises:
        ValueError: if ``items`` is empty or ``count`` is negative
    """
    if not items:
        raise ValueError("Cannot draw from an empty sequence")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    chooser = rng or random
    return [chooser.choice(items) for _ in range(count)]
