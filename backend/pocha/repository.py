"""Match persistence: abstract interface and local file implementation."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from pocha.exceptions import MatchNotFoundError, PochaError, StorageError
from pocha.match import Match
from pocha.models import MatchRecord, MatchSummary
from pocha.ranking import leader
from shared.storage import InvalidKeyError, LocalDocumentStore

if TYPE_CHECKING:
    from typing import Any

logger = structlog.get_logger()

_MATCHES_SUBDIR = "matches"
_INDEX_KEY = "index"


def summarize(match: Match) -> MatchSummary:
    """Index entry for a match: roster, leader and last activity."""
    return MatchSummary(
        match_id=match.match_id,
        player_names=tuple(p.name for p in match.players),
        leader=leader(match),
        rounds_played=len(match.ledger),
        status=match.status,
        created_at=match.created_at,
        last_played_at=match.updated_at,
    )


def _sorted_summaries(summaries: list[MatchSummary]) -> list[MatchSummary]:
    return sorted(summaries, key=lambda s: (s.last_played_at, s.match_id), reverse=True)


class MatchRepository(ABC):
    """Abstract interface for match persistence."""

    @abstractmethod
    async def save(self, match: Match) -> None: ...

    @abstractmethod
    async def load(self, match_id: str) -> Match: ...

    @abstractmethod
    async def list_matches(self) -> list[MatchSummary]: ...

    @abstractmethod
    async def delete(self, match_id: str) -> None: ...


class FileMatchRepository(MatchRepository):
    """File-backed match repository.

    Each match is one JSON snapshot under <data_dir>/matches/, replaced
    atomically on every save. <data_dir>/index.json lists a summary per
    match so the match list can be shown without reading every snapshot.
    The index is derived data: when it is missing it is rebuilt from the
    snapshots.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._matches = LocalDocumentStore(self._data_dir / _MATCHES_SUBDIR)
        self._meta = LocalDocumentStore(self._data_dir)
        self._lock = asyncio.Lock()

    def _read_record(self, match_id: str) -> MatchRecord:
        try:
            data = self._matches.read(match_id)
        except OSError as exc:
            raise StorageError(f"failed to read match '{match_id}'") from exc
        except InvalidKeyError as exc:
            # no stored match can have an id the store cannot name
            raise MatchNotFoundError(match_id) from exc
        except ValueError as exc:
            raise StorageError(str(exc)) from exc
        if data is None:
            raise MatchNotFoundError(match_id)
        try:
            return MatchRecord.model_validate(data)
        except ValidationError as exc:
            raise StorageError(f"match '{match_id}' has an unreadable snapshot") from exc

    def _read_index(self) -> dict[str, MatchSummary] | None:
        try:
            data = self._meta.read(_INDEX_KEY)
        except (OSError, ValueError) as exc:
            logger.warning("match index unreadable, rebuilding", error=str(exc))
            return None
        if data is None:
            return None
        try:
            summaries = [MatchSummary.model_validate(item) for item in data.get("matches", [])]
        except (AttributeError, ValidationError) as exc:
            logger.warning("match index malformed, rebuilding", error=str(exc))
            return None
        return {s.match_id: s for s in summaries}

    def _write_index(self, index: dict[str, MatchSummary]) -> None:
        document: dict[str, Any] = {
            "matches": [s.model_dump(mode="json") for s in _sorted_summaries(list(index.values()))],
        }
        self._meta.write(_INDEX_KEY, document)

    def _rebuild_index(self) -> dict[str, MatchSummary]:
        index: dict[str, MatchSummary] = {}
        for match_id in self._matches.keys():
            try:
                index[match_id] = summarize(Match.from_record(self._read_record(match_id)))
            except PochaError:
                logger.exception("skipping unreadable match while rebuilding index", match_id=match_id)
        return index

    async def save(self, match: Match) -> None:
        """Write the match snapshot, then its index entry. Raises StorageError on failure."""
        record = match.to_record()
        async with self._lock:
            try:
                self._matches.write(match.match_id, record.model_dump(mode="json"))
                index = self._read_index()
                if index is None:
                    index = self._rebuild_index()
                index[match.match_id] = summarize(match)
                self._write_index(index)
            except OSError as exc:
                raise StorageError(f"failed to save match '{match.match_id}': {exc}") from exc
            except ValueError as exc:
                raise StorageError(str(exc)) from exc
        logger.info("saved match", match_id=match.match_id, rounds=len(record.rounds))

    async def load(self, match_id: str) -> Match:
        """Rebuild a match from its snapshot. Raises MatchNotFoundError or StorageError."""
        async with self._lock:
            record = self._read_record(match_id)
        try:
            return Match.from_record(record)
        except PochaError as exc:
            raise StorageError(f"match '{match_id}' snapshot is inconsistent: {exc}") from exc

    async def list_matches(self) -> list[MatchSummary]:
        """Summaries of all stored matches, most recently played first."""
        async with self._lock:
            index = self._read_index()
            if index is None:
                index = self._rebuild_index()
                if index:
                    try:
                        self._write_index(index)
                    except OSError:
                        logger.exception("failed to persist rebuilt match index")
        return _sorted_summaries(list(index.values()))

    async def rebuild_index(self) -> list[MatchSummary]:
        """Regenerate index.json from the match snapshots on disk."""
        async with self._lock:
            index = self._rebuild_index()
            try:
                self._write_index(index)
            except OSError as exc:
                raise StorageError(f"failed to write match index: {exc}") from exc
        return _sorted_summaries(list(index.values()))

    async def delete(self, match_id: str) -> None:
        """Remove a match and its index entry. Raises MatchNotFoundError if unknown."""
        async with self._lock:
            try:
                if not self._matches.delete(match_id):
                    raise MatchNotFoundError(match_id)
                index = self._read_index()
                if index is None:
                    index = self._rebuild_index()
                index.pop(match_id, None)
                self._write_index(index)
            except InvalidKeyError as exc:
                raise MatchNotFoundError(match_id) from exc
            except OSError as exc:
                raise StorageError(f"failed to delete match '{match_id}': {exc}") from exc
            except ValueError as exc:
                raise StorageError(str(exc)) from exc
        logger.info("deleted match", match_id=match_id)
