"""
Match aggregate: roster, rules and ledger.

A Match is the explicit owner of one game's state. It is passed around
by reference (MatchService keeps the live instances) rather than held in
module-level state, so validation, scoring and ranking can be exercised
without any session.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from pocha.enums import MatchStatus
from pocha.exceptions import InvalidRosterError, MatchFinishedError
from pocha.ledger import MatchLedger
from pocha.models import MatchRecord, Player, Round, RoundProposal
from pocha.scoring import score_round
from pocha.settings import MAX_PLAYERS, MIN_PLAYERS, settings_for_roster
from pocha.validator import validate_round

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pocha.settings import MatchSettings

logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _check_roster(players: Sequence[Player]) -> None:
    if not MIN_PLAYERS <= len(players) <= MAX_PLAYERS:
        raise InvalidRosterError(f"a match needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(players)}")
    ids = [p.player_id for p in players]
    duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
    if duplicates:
        raise InvalidRosterError(f"duplicate player ids: {', '.join(duplicates)}")


class Match:
    """One pocha match: fixed roster, fixed rules, append-only ledger."""

    def __init__(
        self,
        match_id: str,
        players: Sequence[Player],
        settings: MatchSettings,
        *,
        ledger: MatchLedger | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        _check_roster(players)
        self.match_id = match_id
        self.players: tuple[Player, ...] = tuple(players)
        self.settings = settings
        self.ledger = ledger if ledger is not None else MatchLedger()
        self.created_at = created_at or _now()
        self.updated_at = updated_at or self.created_at

    @classmethod
    def create(
        cls,
        players: Sequence[Player],
        settings: MatchSettings | None = None,
        match_id: str | None = None,
    ) -> Match:
        """Start a new match, filling in the default deal schedule for the roster."""
        _check_roster(players)
        resolved = settings_for_roster(settings, len(players))
        return cls(match_id or uuid.uuid4().hex, players, resolved)

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.FINISHED if self.ledger.finished else MatchStatus.IN_PROGRESS

    @property
    def next_hand(self) -> int | None:
        """Schedule position of the next hand to play, None when all are played."""
        hand = self.ledger.hands_played + 1
        return hand if hand <= self.settings.num_hands else None

    def dealer_for_hand(self, hand: int) -> Player:
        """Dealer rotates with the hand; the dealer is the last to bid."""
        return self.players[(hand - 1) % len(self.players)]

    def _build_round(self, hand: int, proposal: RoundProposal, amends: int | None) -> Round:
        cards_dealt = self.settings.cards_for_hand(hand)
        closed = self.settings.is_closed_hand(hand)
        validate_round(self.players, proposal, cards_dealt, closed=closed, dealer=self.dealer_for_hand(hand))

        bids = tuple(proposal.bids[p.player_id] for p in self.players)
        tricks = tuple(proposal.tricks[p.player_id] for p in self.players)
        return Round(
            index=self.ledger.next_index,
            hand=hand,
            cards_dealt=cards_dealt,
            closed=closed,
            bids=bids,
            tricks=tricks,
            deltas=score_round(bids, tricks, cards_dealt, self.settings),
            amends=amends,
            played_at=_now(),
        )

    def play_round(self, proposal: RoundProposal) -> Round:
        """Validate, score and commit the next hand of the schedule."""
        if self.ledger.finished:
            raise MatchFinishedError("match is finished; no more rounds can be recorded")
        hand = self.next_hand
        if hand is None:
            raise MatchFinishedError("every hand of the deal schedule has been played")

        round_ = self._build_round(hand, proposal, amends=None)
        self.ledger.append(round_)
        self.updated_at = round_.played_at
        logger.info("round committed", match_id=self.match_id, index=round_.index, hand=hand, deltas=round_.deltas)

        if self.settings.auto_finish and self.next_hand is None:
            self.finish()
        return round_

    def amend_round(self, index: int, proposal: RoundProposal) -> Round:
        """Commit a correction that supersedes the round at ledger position index."""
        if self.ledger.finished:
            raise MatchFinishedError("match is finished; rounds can no longer be corrected")
        target = self.ledger.at(index)

        round_ = self._build_round(target.hand, proposal, amends=target.index)
        self.ledger.append(round_)
        self.updated_at = round_.played_at
        logger.info("round amended", match_id=self.match_id, index=round_.index, amends=index, hand=target.hand)
        return round_

    def finish(self) -> None:
        if self.ledger.finished:
            return
        self.ledger.finish()
        self.updated_at = _now()
        logger.info("match finished", match_id=self.match_id, rounds=len(self.ledger))

    def to_record(self) -> MatchRecord:
        return MatchRecord(
            match_id=self.match_id,
            settings=self.settings,
            players=self.players,
            rounds=self.ledger.history(),
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_record(cls, record: MatchRecord) -> Match:
        """Rebuild a match by replaying its stored rounds through a fresh ledger."""
        ledger = MatchLedger(record.rounds, finished=record.status == MatchStatus.FINISHED)
        return cls(
            record.match_id,
            record.players,
            record.settings,
            ledger=ledger,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
