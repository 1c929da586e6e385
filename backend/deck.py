from __future__ import annotations

from typing import Dict, Iterable, List

from models import Card

SUITS = ["coins", "swords", "cups", "batons"]
# strongest first
RANKS = ["ace", "three", "king", "knight", "knave", "7", "6", "5", "4", "2"]

RANK_STRENGTH: Dict[str, int] = {rank: idx for idx, rank in enumerate(RANKS)}

CARD_POINTS: Dict[str, int] = {
    "ace": 11,
    "three": 10,
    "king": 4,
    "knight": 3,
    "knave": 2,
}

DECK_SIZE = len(SUITS) * len(RANKS)
TOTAL_POINTS = sum(CARD_POINTS.values()) * len(SUITS)


def build_deck() -> List[Card]:
    """Return the 40 cards in suit order, unshuffled."""
    return [Card(suit=suit, rank=rank) for suit in SUITS for rank in RANKS]


def rank_strength(card: Card) -> int:
    """Lower is stronger: the ace is 0, the two is 9."""
    return RANK_STRENGTH[card.rank]


def card_points(card: Card) -> int:
    return CARD_POINTS.get(card.rank, 0)


def total_points(cards: Iterable[Card]) -> int:
    return sum(card_points(card) for card in cards)
