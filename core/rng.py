"""Deterministic RNG and shuffle driven by a public seed and a nonce.

The same ``(seed, nonce)`` pair yields the same stream and the same deck
order in every process, so the n-th card of a round can always be
recomputed without storing the undrawn remainder of the deck.
"""

from typing import Callable, Iterator, MutableSequence, TypeVar

from core.cards import Card, build_deck

T = TypeVar("T")

MASK_32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
MULBERRY_INCREMENT = 0x6D2B79F5


def fnv1a32(text: str) -> int:
    """FNV-1a 32-bit hash of the UTF-8 bytes of a string."""
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & MASK_32
    return h


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK_32


def mulberry32(seed: int) -> Iterator[float]:
    """Mulberry32 PRNG yielding floats in [0, 1)."""
    t = seed & MASK_32
    while True:
        t = (t + MULBERRY_INCREMENT) & MASK_32
        r = _imul(t ^ (t >> 15), 1 | t)
        r ^= (r + _imul(r ^ (r >> 7), 61 | r)) & MASK_32
        yield ((r ^ (r >> 14)) & MASK_32) / 4294967296


def seeded_stream(seed: str, nonce: int) -> Iterator[float]:
    """
    Create a reproducible float stream for a seed string and a nonce.

    Args:
        seed: Public seed string
        nonce: Non-negative integer, reduced to unsigned 32 bits

    Returns:
        An infinite iterator of floats in [0, 1)
    """
    return mulberry32(fnv1a32(seed) ^ (nonce & MASK_32))


def shuffle_in_place(items: MutableSequence[T], rng: Callable[[], float]) -> MutableSequence[T]:
    """Fisher-Yates shuffle using the provided float source."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rng() * (i + 1))
        items[i], items[j] = items[j], items[i]
    return items


def create_shuffled_deck(seed: str, nonce: int) -> tuple[Card, ...]:
    """Return the canonical deck shuffled for ``(seed, nonce)``."""
    stream = seeded_stream(seed, nonce)
    deck = build_deck()
    shuffle_in_place(deck, lambda: next(stream))
    return tuple(deck)


def derive_seed(*parts: object) -> str:
    """Join parts into a seed string, e.g. user id, timestamp and a random id."""
    return "|".join(str(part) for part in parts)
