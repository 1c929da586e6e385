from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Suit = Literal["coins", "batons", "cups", "swords"]
Rank = Literal["ace", "three", "king", "knight", "knave", "7", "6", "5", "4", "2"]
Phase = Literal["lobby", "playing", "finished"]

SUIT_SYMBOLS: Dict[str, str] = {
    "coins": "D",
    "batons": "B",
    "cups": "C",
    "swords": "S",
}

RANK_CODES: Dict[str, str] = {
    "ace": "A",
    "three": "3",
    "king": "K",
    "knight": "C",
    "knave": "J",
    "7": "7",
    "6": "6",
    "5": "5",
    "4": "4",
    "2": "2",
}


class ErrorCode(str, Enum):
    # lobby
    GAME_ALREADY_STARTED = "game_already_started"
    GAME_FULL = "game_full"
    PLAYER_NAME_TAKEN = "player_name_taken"
    PLAYER_NOT_IN_GAME = "player_not_in_game"
    INVALID_PLAYER_COUNT = "invalid_player_count"
    # play
    GAME_NOT_STARTED = "game_not_started"
    GAME_OVER = "game_over"
    TRICK_COMPLETE = "trick_complete"
    NOT_PLAYERS_TURN = "not_players_turn"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    # resolution
    TRICK_NOT_COMPLETE = "trick_not_complete"
    GAME_NOT_COMPLETE = "game_not_complete"
    # routing
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_ID_TAKEN = "session_id_taken"


class Card(BaseModel):
    suit: Suit
    rank: Rank

    model_config = ConfigDict(frozen=True)

    @property
    def code(self) -> str:
        return f"{RANK_CODES[self.rank]}{SUIT_SYMBOLS[self.suit]}"


class TrickPlay(BaseModel):
    player: str
    card: Card

    model_config = ConfigDict(frozen=True)


class Game(BaseModel):
    """Authoritative state of one game.

    Treated as immutable: engine functions return updated copies and never
    touch the lists or dicts of the record they were given.
    """

    phase: Phase = "lobby"
    players: List[str] = Field(default_factory=list)
    # None for 2 players, {"team1": [...], "team2": [...]} for 4
    teams: Optional[Dict[str, List[str]]] = None
    deck: List[Card] = Field(default_factory=list)
    trump_card: Optional[Card] = None
    hands: Dict[str, List[Card]] = Field(default_factory=dict)
    captured_cards: Dict[str, List[Card]] = Field(default_factory=dict)
    table: List[TrickPlay] = Field(default_factory=list)
    turn_order: List[str] = Field(default_factory=list)
    current_player: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class FilteredView(BaseModel):
    """Player-specific projection of a game; other players' cards are counts."""

    phase: Phase
    players: List[str]
    teams: Optional[Dict[str, List[str]]] = None
    deck_count: int = 0
    trump_card: Optional[Card] = None
    hand: List[Card] = Field(default_factory=list)
    hand_counts: Dict[str, int] = Field(default_factory=dict)
    captured_card_counts: Dict[str, int] = Field(default_factory=dict)
    table: List[TrickPlay] = Field(default_factory=list)
    turn_order: List[str] = Field(default_factory=list)
    current_player: Optional[str] = None

    model_config = ConfigDict(frozen=True)
