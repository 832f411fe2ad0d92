"""
Immutable value models for Pocha matches.

Per-player tuples on Round (bids, tricks, deltas) are aligned with the
match's registration order.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pocha.enums import MatchStatus, RejectionRule
from pocha.settings import MatchSettings


class Player(BaseModel):
    """A seat at the table. Fixed for the whole match."""

    model_config = ConfigDict(frozen=True)

    player_id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class RoundProposal(BaseModel):
    """Bids and tricks submitted for one hand, keyed by player id."""

    model_config = ConfigDict(frozen=True)

    bids: dict[str, int]
    tricks: dict[str, int]


class RoundRejection(BaseModel):
    """Why a proposed round was refused."""

    model_config = ConfigDict(frozen=True)

    rule: RejectionRule
    player_ids: tuple[str, ...] = ()
    message: str


class Round(BaseModel):
    """
    A committed round of the ledger.

    index is the ledger position (1-based, gap-free). hand is the position
    in the deal schedule. An amendment repeats the hand of the round it
    supersedes and points at it through amends.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)
    hand: int = Field(ge=1)
    cards_dealt: int = Field(ge=1)
    closed: bool
    bids: tuple[int, ...]
    tricks: tuple[int, ...]
    deltas: tuple[int, ...]
    amends: int | None = None
    played_at: datetime

    @property
    def is_amendment(self) -> bool:
        return self.amends is not None


class StandingEntry(BaseModel):
    """One player's cumulative position after a given round."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str
    score: int
    rank: int  # 1 = leader; ranks are a total order, ties broken by registration
    previous_rank: int

    @property
    def rank_delta(self) -> int:
        """Positive when the player climbed since the previous round."""
        return self.previous_rank - self.rank


class MatchSummary(BaseModel):
    """Index entry for one stored match."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    player_names: tuple[str, ...]
    leader: str | None = None  # None until a round has been played
    rounds_played: int = 0
    status: MatchStatus = MatchStatus.IN_PROGRESS
    created_at: datetime
    last_played_at: datetime


class MatchRecord(BaseModel):
    """Durable snapshot of a match: everything needed to rebuild it."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    settings: MatchSettings
    players: tuple[Player, ...]
    rounds: tuple[Round, ...] = ()
    status: MatchStatus = MatchStatus.IN_PROGRESS
    created_at: datetime
    updated_at: datetime
