from __future__ import annotations

from models import FilteredView, Game


def project_view(game: Game, player: str) -> FilteredView:
    """Build what ``player`` is allowed to see of ``game``.

    Own hand in full; everybody else's hand, the deck and the captured piles
    as counts only. Pure: the game is only read.
    """
    return FilteredView(
        phase=game.phase,
        players=list(game.players),
        teams={team: list(members) for team, members in game.teams.items()} if game.teams else None,
        deck_count=len(game.deck),
        trump_card=game.trump_card,
        hand=list(game.hands.get(player, [])),
        hand_counts={pid: len(hand) for pid, hand in game.hands.items()},
        captured_card_counts={pid: len(cards) for pid, cards in game.captured_cards.items()},
        table=list(game.table),
        turn_order=list(game.turn_order),
        current_player=game.current_player,
    )
