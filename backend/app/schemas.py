from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, ConfigDict

from models import Card, FilteredView, Game


class PlayCardRequest(BaseModel):
    card: Card

    model_config = ConfigDict(extra="ignore")


class SessionCreated(BaseModel):
    session_id: str
    view: FilteredView


class ViewOut(BaseModel):
    status: Literal["ok", "continue", "trick_complete"]
    view: FilteredView


class GameOut(BaseModel):
    status: Literal["ok"] = "ok"
    game: Game


class StatusOut(BaseModel):
    status: Literal["continue", "game_complete"]


class ScoresOut(BaseModel):
    status: Literal["game_over"] = "game_over"
    scores: Dict[str, int]
