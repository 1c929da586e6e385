from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from deck import build_deck, rank_strength, total_points
from models import Card, ErrorCode, Game, TrickPlay

MAX_PLAYERS = 4
START_PLAYER_COUNTS = (2, 4)
HAND_SIZE = 3


class Status(str, Enum):
    OK = "ok"
    CONTINUE = "continue"
    TRICK_COMPLETE = "trick_complete"
    GAME_COMPLETE = "game_complete"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Outcome:
    status: Status
    game: Game
    scores: Optional[Dict[str, int]] = None

    ok = True


@dataclass(frozen=True)
class Rejection:
    reason: ErrorCode

    ok = False

    def __str__(self) -> str:
        return self.reason.value


Result = Union[Outcome, Rejection]


# ------------------------------------------------------------------
# Lobby management
# ------------------------------------------------------------------
def create(player: str) -> Game:
    return Game(phase="lobby", players=[player])


def join(game: Game, player: str) -> Result:
    if game.phase != "lobby":
        return Rejection(ErrorCode.GAME_ALREADY_STARTED)
    if len(game.players) >= MAX_PLAYERS:
        return Rejection(ErrorCode.GAME_FULL)
    if player in game.players:
        return Rejection(ErrorCode.PLAYER_NAME_TAKEN)
    return Outcome(Status.OK, game.model_copy(update={"players": [*game.players, player]}))


def leave(game: Game, player: str) -> Result:
    if game.phase != "lobby":
        return Rejection(ErrorCode.GAME_ALREADY_STARTED)
    if player not in game.players:
        return Rejection(ErrorCode.PLAYER_NOT_IN_GAME)
    remaining = [p for p in game.players if p != player]
    return Outcome(Status.OK, game.model_copy(update={"players": remaining}))


# ------------------------------------------------------------------
# Match lifecycle
# ------------------------------------------------------------------
def start(game: Game, rng: Optional[random.Random] = None) -> Result:
    """Seat teams, shuffle, deal three cards each and reveal the trump.

    The trump card is taken from the top of the remaining deck and put at
    the bottom, so it is the last card anyone draws.
    """
    if game.phase != "lobby":
        return Rejection(ErrorCode.GAME_ALREADY_STARTED)
    if len(game.players) not in START_PLAYER_COUNTS:
        return Rejection(ErrorCode.INVALID_PLAYER_COUNT)

    players = list(game.players)
    deck = build_deck()
    (rng or random).shuffle(deck)

    hands: Dict[str, List[Card]] = {p: [] for p in players}
    hands, deck = _deal(players, deck, hands, HAND_SIZE)

    trump_card = deck[0]
    deck = deck[1:] + [trump_card]

    started = game.model_copy(
        update={
            "phase": "playing",
            "teams": _assign_teams(players),
            "deck": deck,
            "trump_card": trump_card,
            "hands": hands,
            "captured_cards": {p: [] for p in players},
            "table": [],
            "turn_order": players,
            "current_player": players[0],
        }
    )
    return Outcome(Status.OK, started)


def play_card(game: Game, player: str, card: Card) -> Result:
    if game.phase == "lobby":
        return Rejection(ErrorCode.GAME_NOT_STARTED)
    if game.phase == "finished":
        return Rejection(ErrorCode.GAME_OVER)
    if not game.turn_order:
        return Rejection(ErrorCode.TRICK_COMPLETE)
    if game.current_player != player:
        return Rejection(ErrorCode.NOT_PLAYERS_TURN)
    hand = game.hands.get(player, [])
    if card not in hand:
        return Rejection(ErrorCode.CARD_NOT_IN_HAND)

    new_hand = list(hand)
    new_hand.remove(card)
    turn_order = game.turn_order[1:]
    updated = game.model_copy(
        update={
            "hands": {**game.hands, player: new_hand},
            "table": [*game.table, TrickPlay(player=player, card=card)],
            "turn_order": turn_order,
            "current_player": turn_order[0] if turn_order else None,
        }
    )
    status = Status.CONTINUE if turn_order else Status.TRICK_COMPLETE
    return Outcome(status, updated)


def resolve_trick(game: Game) -> Result:
    """Award the table to the trick winner, rotate seats and draw one card each."""
    if game.turn_order or not game.table:
        return Rejection(ErrorCode.TRICK_NOT_COMPLETE)

    winner = trick_winner(game.table, game.trump_card.suit)
    trick_cards = [play.card for play in game.table]
    captured = {
        **game.captured_cards,
        winner: [*game.captured_cards.get(winner, []), *trick_cards],
    }
    turn_order = _rotate(game.players, winner)
    hands, deck = _deal(turn_order, game.deck, game.hands, 1)

    updated = game.model_copy(
        update={
            "current_player": winner,
            "captured_cards": captured,
            "table": [],
            "turn_order": turn_order,
            "hands": hands,
            "deck": deck,
        }
    )
    if _cards_exhausted(updated):
        return Outcome(Status.GAME_COMPLETE, updated.model_copy(update={"phase": "finished"}))
    return Outcome(Status.CONTINUE, updated)


def finalize(game: Game) -> Result:
    """Score a finished game; a lobby or an unresolved last trick is not finished."""
    if not is_game_over(game):
        return Rejection(ErrorCode.GAME_NOT_COMPLETE)
    return Outcome(Status.GAME_OVER, game, scores=score(game))


# ------------------------------------------------------------------
# Rules
# ------------------------------------------------------------------
def trick_winner(table: Sequence[TrickPlay], trump_suit: str) -> str:
    """Strongest trump wins; without trumps, strongest card of the lead suit."""
    lead_suit = table[0].card.suit
    contenders = [play for play in table if play.card.suit == trump_suit]
    if not contenders:
        contenders = [play for play in table if play.card.suit == lead_suit]
    return min(contenders, key=lambda play: rank_strength(play.card)).player


def score(game: Game) -> Dict[str, int]:
    if game.teams is None:
        return {p: total_points(cards) for p, cards in game.captured_cards.items()}
    return {
        team: total_points(card for member in members for card in game.captured_cards.get(member, []))
        for team, members in game.teams.items()
    }


def is_game_over(game: Game) -> bool:
    return game.phase != "lobby" and not game.table and _cards_exhausted(game)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def _assign_teams(players: Sequence[str]) -> Optional[Dict[str, List[str]]]:
    if len(players) != 4:
        return None
    # partners sit across from each other
    return {"team1": [players[0], players[2]], "team2": [players[1], players[3]]}


def _deal(
    order: Sequence[str],
    deck: Sequence[Card],
    hands: Dict[str, List[Card]],
    count: int,
) -> Tuple[Dict[str, List[Card]], List[Card]]:
    """Give each player in ``order`` the next ``count`` cards while the deck lasts."""
    remaining = list(deck)
    dealt = dict(hands)
    for player in order:
        drawn, remaining = remaining[:count], remaining[count:]
        if drawn:
            dealt[player] = [*dealt.get(player, []), *drawn]
    return dealt, remaining


def _rotate(players: Sequence[str], first: str) -> List[str]:
    idx = list(players).index(first)
    return [*players[idx:], *players[:idx]]


def _cards_exhausted(game: Game) -> bool:
    return not game.deck and all(not hand for hand in game.hands.values())
