"""Typed domain exceptions for Pocha match operations.

Domain code raises subclasses of PochaError rather than raw ValueError so
the HTTP boundary can map each family to a structured rejection without
catching unexpected failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pocha.models import RoundRejection


class PochaError(Exception):
    """Base exception for match rule and state violations."""


class RoundValidationError(PochaError):
    """A proposed round breaks a legality rule and was not committed.

    Attributes:
        rejection: The violated rule, offending player ids and message.

    """

    def __init__(self, rejection: RoundRejection) -> None:
        self.rejection = rejection
        super().__init__(rejection.message)


class UnsupportedSettingsError(PochaError):
    """Match settings cannot be played with the given roster."""


class InvalidRosterError(PochaError):
    """Player list is unusable (too few players, duplicate ids, blank names)."""


class LedgerStateError(PochaError):
    """Operation is not valid for the current state of the match ledger."""


class MatchFinishedError(LedgerStateError):
    """Ledger refuses appends once the match is finished."""


class RoundNotFoundError(LedgerStateError):
    """Requested round index does not exist in the ledger."""

    def __init__(self, index: int, rounds_played: int) -> None:
        self.index = index
        self.rounds_played = rounds_played
        super().__init__(f"round {index} not found (ledger has {rounds_played} rounds)")


class LedgerOrderError(LedgerStateError):
    """Round index would leave a gap or repeat an existing index."""


class AmendmentError(LedgerStateError):
    """Round cannot be amended (already superseded, or nothing to amend)."""


class PlayerNotFoundError(PochaError):
    """Player id is not part of the match roster."""

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"player '{player_id}' is not in this match")


class MatchNotFoundError(PochaError):
    """No match with the given id is known to the store."""

    def __init__(self, match_id: str) -> None:
        self.match_id = match_id
        super().__init__(f"match '{match_id}' not found")


class StorageError(PochaError):
    """Saving or loading a match failed; in-memory state is still valid."""
