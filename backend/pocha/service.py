"""
Match session service.

MatchService owns the live Match instances and is the single writer for
them. In-memory state is authoritative: every command mutates the match
first and then tries to persist it. A failed save never undoes the
command; the match stays in the unsaved set, the outcome reports it, and
the save is retried by the next command or by flush().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from pocha.exceptions import MatchNotFoundError, StorageError
from pocha.match import Match
from pocha.ranking import standings_through
from pocha.repository import summarize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pocha.models import MatchSummary, Player, Round, RoundProposal, StandingEntry
    from pocha.repository import MatchRepository
    from pocha.settings import MatchSettings

logger = structlog.get_logger()


@dataclass(frozen=True)
class SaveStatus:
    """Whether the latest change reached durable storage."""

    saved: bool = True
    error: str | None = None


@dataclass(frozen=True)
class MatchOutcome:
    match: Match
    save: SaveStatus = field(default_factory=SaveStatus)


@dataclass(frozen=True)
class RoundOutcome:
    """A committed round together with the standings it produced."""

    match: Match
    round: Round
    standings: list[StandingEntry]
    save: SaveStatus = field(default_factory=SaveStatus)


class MatchService:
    """Commands a UI issues against matches: create, play, correct, inspect, delete."""

    def __init__(self, repository: MatchRepository) -> None:
        self._repository = repository
        self._matches: dict[str, Match] = {}
        self._unsaved: set[str] = set()

    @property
    def unsaved_match_ids(self) -> frozenset[str]:
        return frozenset(self._unsaved)

    async def _persist(self, match: Match) -> SaveStatus:
        try:
            await self._repository.save(match)
        except StorageError as exc:
            self._unsaved.add(match.match_id)
            logger.warning("match changes not saved", match_id=match.match_id, error=str(exc))
            return SaveStatus(saved=False, error=str(exc))
        self._unsaved.discard(match.match_id)
        return SaveStatus()

    async def flush(self) -> dict[str, SaveStatus]:
        """Retry saving every match with unsaved changes."""
        results: dict[str, SaveStatus] = {}
        for match_id in sorted(self._unsaved):
            results[match_id] = await self._persist(self._matches[match_id])
        return results

    async def _retry_pending(self) -> None:
        if self._unsaved:
            await self.flush()

    async def get_match(self, match_id: str) -> Match:
        """Return the live match, loading it from storage on first access."""
        match = self._matches.get(match_id)
        if match is None:
            match = await self._repository.load(match_id)
            self._matches[match_id] = match
        return match

    async def create_match(
        self,
        players: Sequence[Player],
        settings: MatchSettings | None = None,
        match_id: str | None = None,
    ) -> MatchOutcome:
        await self._retry_pending()
        match = Match.create(players, settings, match_id=match_id)
        self._matches[match.match_id] = match
        structlog.contextvars.bind_contextvars(match_id=match.match_id)
        logger.info("match created", players=[p.name for p in match.players], hands=match.settings.num_hands)
        return MatchOutcome(match=match, save=await self._persist(match))

    async def submit_round(self, match_id: str, proposal: RoundProposal) -> RoundOutcome:
        """Validate, score and record the next hand. Rejections raise RoundValidationError."""
        await self._retry_pending()
        match = await self.get_match(match_id)
        structlog.contextvars.bind_contextvars(match_id=match_id)
        round_ = match.play_round(proposal)
        return RoundOutcome(
            match=match,
            round=round_,
            standings=standings_through(match, round_.index),
            save=await self._persist(match),
        )

    async def amend_round(self, match_id: str, index: int, proposal: RoundProposal) -> RoundOutcome:
        """Record a correction for the round at ledger position index."""
        await self._retry_pending()
        match = await self.get_match(match_id)
        structlog.contextvars.bind_contextvars(match_id=match_id)
        round_ = match.amend_round(index, proposal)
        return RoundOutcome(
            match=match,
            round=round_,
            standings=standings_through(match, round_.index),
            save=await self._persist(match),
        )

    async def finish_match(self, match_id: str) -> MatchOutcome:
        await self._retry_pending()
        match = await self.get_match(match_id)
        match.finish()
        return MatchOutcome(match=match, save=await self._persist(match))

    async def standings(self, match_id: str, round_index: int | None = None) -> list[StandingEntry]:
        match = await self.get_match(match_id)
        return standings_through(match, round_index)

    async def history(self, match_id: str) -> tuple[Round, ...]:
        match = await self.get_match(match_id)
        return match.ledger.history()

    async def round_at(self, match_id: str, index: int) -> Round:
        match = await self.get_match(match_id)
        return match.ledger.at(index)

    async def list_matches(self) -> list[MatchSummary]:
        """Stored summaries, overlaid with live matches whose changes are not saved yet."""
        await self._retry_pending()
        summaries = {s.match_id: s for s in await self._repository.list_matches()}
        for match_id in self._unsaved:
            summaries[match_id] = summarize(self._matches[match_id])
        return sorted(summaries.values(), key=lambda s: (s.last_played_at, s.match_id), reverse=True)

    async def delete_match(self, match_id: str) -> None:
        """Remove a match from memory and storage. Only ever done on explicit request."""
        if match_id not in self._matches:
            # raises MatchNotFoundError for ids storage has never seen
            await self._repository.delete(match_id)
            return
        try:
            await self._repository.delete(match_id)
        except MatchNotFoundError:
            # created but never saved successfully
            logger.info("deleting match that was never stored", match_id=match_id)
        self._matches.pop(match_id)
        self._unsaved.discard(match_id)
        logger.info("match deleted", match_id=match_id)
