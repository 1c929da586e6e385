import random
from typing import List, Tuple

import pytest

from deck import build_deck
from game import (
    Status,
    create,
    finalize,
    is_game_over,
    join,
    leave,
    play_card,
    resolve_trick,
    start,
    trick_winner,
)
from models import Card, ErrorCode, Game, TrickPlay


def card(suit: str, rank: str) -> Card:
    return Card(suit=suit, rank=rank)


def make_game(players=("p1", "p2"), **overrides) -> Game:
    players = list(players)
    fields = dict(
        phase="playing",
        players=players,
        teams={"team1": [players[0], players[2]], "team2": [players[1], players[3]]} if len(players) == 4 else None,
        deck=[],
        trump_card=card("cups", "ace"),
        hands={p: [] for p in players},
        captured_cards={p: [] for p in players},
        table=[],
        turn_order=list(players),
        current_player=players[0],
    )
    fields.update(overrides)
    return Game(**fields)


def make_completed_trick(plays: List[Tuple[str, Card]], trump_suit: str = "cups", players=("p1", "p2"), **overrides) -> Game:
    fields = dict(
        trump_card=card(trump_suit, "ace"),
        table=[TrickPlay(player=p, card=c) for p, c in plays],
        turn_order=[],
        current_player=None,
        deck=[card("coins", "2"), card("coins", "4"), card("batons", "2"), card("batons", "4")],
        hands={p: [card("coins", "king")] for p in players},
    )
    fields.update(overrides)
    return make_game(players, **fields)


def all_cards(game: Game) -> List[Card]:
    cards = list(game.deck)
    for hand in game.hands.values():
        cards.extend(hand)
    cards.extend(play.card for play in game.table)
    for pile in game.captured_cards.values():
        cards.extend(pile)
    return cards


def assert_conserved(game: Game):
    cards = all_cards(game)
    assert len(cards) == 40
    assert set(cards) == set(build_deck())


def lobby(*players: str) -> Game:
    game = create(players[0])
    for player in players[1:]:
        game = join(game, player).game
    return game


# ------------------------------------------------------------------
# Lobby
# ------------------------------------------------------------------
def test_create_seats_single_player_in_lobby():
    game = create("p1")
    assert game.phase == "lobby"
    assert game.players == ["p1"]
    assert game.deck == []
    assert game.trump_card is None
    assert game.hands == {}
    assert game.captured_cards == {}
    assert game.table == []
    assert game.turn_order == []
    assert game.current_player is None


def test_join_appends_in_arrival_order():
    game = create("p1")
    result = join(game, "p2")
    assert result.ok and result.status == Status.OK
    assert result.game.players == ["p1", "p2"]
    assert game.players == ["p1"]


def test_join_rejections():
    assert join(lobby("p1", "p2", "p3", "p4"), "p5").reason == ErrorCode.GAME_FULL
    assert join(lobby("p1", "p2"), "p2").reason == ErrorCode.PLAYER_NAME_TAKEN
    started = start(lobby("p1", "p2")).game
    assert join(started, "p3").reason == ErrorCode.GAME_ALREADY_STARTED


def test_join_checks_phase_then_size_then_name():
    full = lobby("p1", "p2", "p3", "p4")
    assert join(full, "p1").reason == ErrorCode.GAME_FULL
    started = start(full).game
    assert join(started, "p1").reason == ErrorCode.GAME_ALREADY_STARTED


def test_leave_keeps_relative_order():
    result = leave(lobby("p1", "p2", "p3"), "p2")
    assert result.ok
    assert result.game.players == ["p1", "p3"]


def test_leave_rejections():
    assert leave(lobby("p1", "p2"), "p9").reason == ErrorCode.PLAYER_NOT_IN_GAME
    started = start(lobby("p1", "p2")).game
    assert leave(started, "p1").reason == ErrorCode.GAME_ALREADY_STARTED


# ------------------------------------------------------------------
# Start
# ------------------------------------------------------------------
@pytest.mark.parametrize("players", [("p1",), ("p1", "p2", "p3")])
def test_start_requires_two_or_four_players(players):
    assert start(lobby(*players)).reason == ErrorCode.INVALID_PLAYER_COUNT


def test_start_twice_is_rejected():
    started = start(lobby("p1", "p2")).game
    assert start(started).reason == ErrorCode.GAME_ALREADY_STARTED


def test_start_two_players_deals_and_reveals_trump():
    before = lobby("p1", "p2")
    snapshot = before.model_dump()
    result = start(before)

    assert result.ok and result.status == Status.OK
    game = result.game
    assert game.phase == "playing"
    assert game.teams is None
    assert game.turn_order == ["p1", "p2"]
    assert game.current_player == "p1"
    assert [len(game.hands[p]) for p in game.players] == [3, 3]
    assert len(game.deck) == 34
    assert game.deck[-1] == game.trump_card
    assert game.captured_cards == {"p1": [], "p2": []}
    assert not set(game.hands["p1"]) & set(game.hands["p2"])
    assert_conserved(game)
    assert before.model_dump() == snapshot


def test_start_four_players_seats_partners_across():
    game = start(lobby("p1", "p2", "p3", "p4")).game
    assert game.teams == {"team1": ["p1", "p3"], "team2": ["p2", "p4"]}
    assert len(game.deck) == 28
    assert all(len(game.hands[p]) == 3 for p in game.players)
    assert_conserved(game)


def test_start_deals_blocks_of_three_then_moves_trump_to_bottom():
    rng = random.Random(42)
    shuffled = build_deck()
    random.Random(42).shuffle(shuffled)

    game = start(lobby("p1", "p2"), rng=rng).game

    assert game.hands["p1"] == shuffled[0:3]
    assert game.hands["p2"] == shuffled[3:6]
    assert game.trump_card == shuffled[6]
    assert game.deck == shuffled[7:] + [shuffled[6]]


def test_start_shuffles_differently_each_time():
    first = start(lobby("p1", "p2")).game
    second = start(lobby("p1", "p2")).game
    assert first.deck != second.deck


# ------------------------------------------------------------------
# Playing cards
# ------------------------------------------------------------------
def test_play_card_rejections():
    hands = {"p1": [card("coins", "ace")], "p2": [card("cups", "2")]}
    assert play_card(create("p1"), "p1", card("coins", "ace")).reason == ErrorCode.GAME_NOT_STARTED
    assert play_card(make_game(phase="finished", hands=hands), "p1", card("coins", "ace")).reason == ErrorCode.GAME_OVER
    full = make_game(hands=hands, turn_order=[], current_player=None)
    assert play_card(full, "p1", card("coins", "ace")).reason == ErrorCode.TRICK_COMPLETE
    game = make_game(hands=hands)
    assert play_card(game, "p2", card("cups", "2")).reason == ErrorCode.NOT_PLAYERS_TURN
    assert play_card(game, "p1", card("cups", "2")).reason == ErrorCode.CARD_NOT_IN_HAND


def test_wrong_turn_is_reported_before_missing_card():
    game = make_game(hands={"p1": [card("coins", "ace")], "p2": []})
    assert play_card(game, "p2", card("swords", "7")).reason == ErrorCode.NOT_PLAYERS_TURN


def test_rejected_play_leaves_game_untouched():
    game = make_game(hands={"p1": [card("coins", "ace")], "p2": [card("cups", "2")]})
    snapshot = game.model_dump()
    play_card(game, "p1", card("swords", "ace"))
    assert game.model_dump() == snapshot


def test_play_card_moves_card_and_advances_turn():
    game = make_game(hands={"p1": [card("coins", "ace"), card("swords", "4")], "p2": [card("cups", "2")]})

    first = play_card(game, "p1", card("coins", "ace"))
    assert first.status == Status.CONTINUE
    assert first.game.hands["p1"] == [card("swords", "4")]
    assert first.game.table == [TrickPlay(player="p1", card=card("coins", "ace"))]
    assert first.game.turn_order == ["p2"]
    assert first.game.current_player == "p2"
    assert game.hands["p1"] == [card("coins", "ace"), card("swords", "4")]

    second = play_card(first.game, "p2", card("cups", "2"))
    assert second.status == Status.TRICK_COMPLETE
    assert second.game.turn_order == []
    assert second.game.current_player is None
    assert [play.player for play in second.game.table] == ["p1", "p2"]


# ------------------------------------------------------------------
# Trick resolution
# ------------------------------------------------------------------
def test_lead_suit_wins_without_trumps():
    table = [TrickPlay(player="p1", card=card("swords", "ace")), TrickPlay(player="p2", card=card("swords", "king"))]
    assert trick_winner(table, "cups") == "p1"


def test_any_trump_beats_non_trump():
    table = [TrickPlay(player="p1", card=card("swords", "ace")), TrickPlay(player="p2", card=card("cups", "2"))]
    assert trick_winner(table, "cups") == "p2"


def test_strongest_trump_wins_regardless_of_play_order():
    table = [
        TrickPlay(player="p1", card=card("cups", "7")),
        TrickPlay(player="p2", card=card("cups", "ace")),
        TrickPlay(player="p3", card=card("cups", "three")),
        TrickPlay(player="p4", card=card("swords", "ace")),
    ]
    assert trick_winner(table, "cups") == "p2"


def test_off_suit_cards_never_win():
    table = [TrickPlay(player="p1", card=card("swords", "king")), TrickPlay(player="p2", card=card("coins", "ace"))]
    assert trick_winner(table, "cups") == "p1"


def test_three_beats_king_in_lead_suit():
    table = [TrickPlay(player="p1", card=card("batons", "king")), TrickPlay(player="p2", card=card("batons", "three"))]
    assert trick_winner(table, "cups") == "p2"


def test_resolve_requires_complete_trick():
    in_progress = make_game(
        table=[TrickPlay(player="p1", card=card("coins", "ace"))],
        turn_order=["p2"],
        current_player="p2",
    )
    assert resolve_trick(in_progress).reason == ErrorCode.TRICK_NOT_COMPLETE
    assert resolve_trick(create("p1")).reason == ErrorCode.TRICK_NOT_COMPLETE


def test_resolve_awards_cards_and_deals_one_each():
    game = make_completed_trick([("p1", card("swords", "ace")), ("p2", card("cups", "2"))])

    result = resolve_trick(game)

    assert result.status == Status.CONTINUE
    resolved = result.game
    assert resolved.current_player == "p2"
    assert resolved.turn_order == ["p2", "p1"]
    assert resolved.table == []
    assert resolved.captured_cards["p2"] == [card("swords", "ace"), card("cups", "2")]
    assert resolved.captured_cards["p1"] == []
    # winner draws first
    assert resolved.hands["p2"][-1] == card("coins", "2")
    assert resolved.hands["p1"][-1] == card("coins", "4")
    assert resolved.deck == [card("batons", "2"), card("batons", "4")]
    assert game.table != []


def test_second_resolve_without_play_is_rejected():
    game = make_completed_trick([("p1", card("swords", "ace")), ("p2", card("swords", "2"))])
    resolved = resolve_trick(game).game
    assert resolved.turn_order
    assert resolve_trick(resolved).reason == ErrorCode.TRICK_NOT_COMPLETE


def test_four_player_rotation_starts_at_winner():
    players = ("p0", "p1", "p2", "p3")
    deck = [card("coins", "2"), card("coins", "4"), card("coins", "5"), card("coins", "6")]
    game = make_completed_trick(
        [
            ("p0", card("swords", "4")),
            ("p1", card("swords", "5")),
            ("p2", card("swords", "ace")),
            ("p3", card("swords", "6")),
        ],
        players=players,
        deck=deck,
        hands={p: [] for p in players},
    )

    resolved = resolve_trick(game).game

    assert resolved.turn_order == ["p2", "p3", "p0", "p1"]
    assert resolved.current_player == "p2"
    assert resolved.hands == {
        "p2": [card("coins", "2")],
        "p3": [card("coins", "4")],
        "p0": [card("coins", "5")],
        "p1": [card("coins", "6")],
    }


def test_no_cards_dealt_once_deck_is_empty():
    game = make_completed_trick(
        [("p1", card("swords", "ace")), ("p2", card("swords", "2"))],
        deck=[],
        hands={"p1": [card("coins", "king")], "p2": [card("batons", "king")]},
    )
    result = resolve_trick(game)
    assert result.status == Status.CONTINUE
    assert result.game.hands == game.hands


def test_last_trick_completes_the_game():
    game = make_completed_trick(
        [("p1", card("swords", "ace")), ("p2", card("swords", "2"))],
        deck=[],
        hands={"p1": [], "p2": []},
    )
    result = resolve_trick(game)
    assert result.status == Status.GAME_COMPLETE
    assert result.game.phase == "finished"
    assert play_card(result.game, "p1", card("swords", "ace")).reason == ErrorCode.GAME_OVER


# ------------------------------------------------------------------
# Scoring
# ------------------------------------------------------------------
def test_finalize_requires_finished_game():
    assert finalize(create("p1")).reason == ErrorCode.GAME_NOT_COMPLETE
    assert finalize(start(lobby("p1", "p2")).game).reason == ErrorCode.GAME_NOT_COMPLETE
    unresolved = make_completed_trick(
        [("p1", card("swords", "ace")), ("p2", card("swords", "2"))],
        deck=[],
        hands={"p1": [], "p2": []},
    )
    assert not is_game_over(unresolved)
    assert finalize(unresolved).reason == ErrorCode.GAME_NOT_COMPLETE


def test_finalize_scores_per_player():
    deck = build_deck()
    game = make_game(phase="finished", captured_cards={"p1": deck[:20], "p2": deck[20:]}, turn_order=["p1", "p2"])
    result = finalize(game)
    assert result.status == Status.GAME_OVER
    assert result.scores == {"p1": 60, "p2": 60}


def test_finalize_scores_per_team():
    deck = build_deck()
    players = ("p1", "p2", "p3", "p4")
    captured = {"p1": deck[:10], "p2": deck[10:20], "p3": deck[20:30], "p4": deck[30:]}
    result = finalize(make_game(players, phase="finished", captured_cards=captured))
    assert set(result.scores) == {"team1", "team2"}
    assert sum(result.scores.values()) == 120


# ------------------------------------------------------------------
# Whole games
# ------------------------------------------------------------------
def play_out(game: Game) -> Tuple[Game, int]:
    tricks = 0
    while True:
        player = game.current_player
        result = play_card(game, player, game.hands[player][0])
        assert result.ok
        game = result.game
        assert_conserved(game)
        if result.status == Status.TRICK_COMPLETE:
            result = resolve_trick(game)
            assert result.ok
            game = result.game
            tricks += 1
            assert_conserved(game)
            if result.status == Status.GAME_COMPLETE:
                return game, tricks


@pytest.mark.parametrize("players, expected_tricks", [(("p1", "p2"), 20), (("p1", "p2", "p3", "p4"), 10)])
def test_full_game_scores_120(players, expected_tricks):
    game = start(lobby(*players), rng=random.Random(len(players))).game

    finished, tricks = play_out(game)

    assert tricks == expected_tricks
    assert finished.phase == "finished"
    assert finished.deck == []
    assert all(hand == [] for hand in finished.hands.values())
    result = finalize(finished)
    assert result.ok
    assert sum(result.scores.values()) == 120
    if len(players) == 4:
        assert set(result.scores) == {"team1", "team2"}
    else:
        assert set(result.scores) == set(players)
