"""Centralized match settings for Pocha - deal schedule and scoring rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pocha.enums import ClosedRoundRule, PenaltyMode
from pocha.exceptions import UnsupportedSettingsError

SPANISH_DECK_SIZE = 40
# two full 52-card decks shuffled together
MAX_DECK_SIZE = 104
MAX_HANDS = 200
MIN_PLAYERS = 2
MAX_PLAYERS = 8


def pocha_deal_schedule(num_players: int, deck_size: int = SPANISH_DECK_SIZE) -> tuple[int, ...]:
    """
    Build the standard pocha hand-size progression for a table.

    One-card hands are played once per player, hand sizes then climb to the
    largest hand the deck allows, that size is played once per player, and
    sizes climb back down to one-card hands played once per player.

    With 4 players and a 40-card deck: 1,1,1,1,2,...,9,10,10,10,10,9,...,2,1,1,1,1.
    """
    if num_players < MIN_PLAYERS:
        raise UnsupportedSettingsError(f"pocha needs at least {MIN_PLAYERS} players, got {num_players}")
    if deck_size > MAX_DECK_SIZE:
        raise UnsupportedSettingsError(f"deck_size={deck_size} is larger than the {MAX_DECK_SIZE}-card maximum")
    max_cards = deck_size // num_players
    if max_cards < 1:
        raise UnsupportedSettingsError(f"a {deck_size}-card deck cannot deal to {num_players} players")

    edge = (1,) * num_players
    if max_cards == 1:
        return edge
    climb = tuple(range(2, max_cards))
    top = (max_cards,) * num_players
    return edge + climb + top + tuple(reversed(climb)) + edge


class MatchSettings(BaseModel):
    """
    Scoring and deal configuration for one match.

    A correct bid scores hit_base_score plus hit_bonus_per_trick for every
    trick won. A missed bid costs miss_penalty_per_trick for every trick of
    difference, or nothing at all under PenaltyMode.ZERO.

    An empty deal_schedule is filled in with pocha_deal_schedule() for the
    roster when the match is created.
    """

    model_config = ConfigDict(frozen=True)

    # --- Deal ---
    deal_schedule: tuple[int, ...] = Field(default=(), max_length=MAX_HANDS)
    deck_size: int = Field(default=SPANISH_DECK_SIZE, ge=1, le=MAX_DECK_SIZE)
    closed_rounds: ClosedRoundRule = ClosedRoundRule.ALWAYS
    auto_finish: bool = True

    # --- Scoring ---
    hit_base_score: int = 10
    hit_bonus_per_trick: int = 5
    miss_penalty_per_trick: int = Field(default=5, ge=0)
    miss_penalty_mode: PenaltyMode = PenaltyMode.NEGATIVE

    @property
    def num_hands(self) -> int:
        return len(self.deal_schedule)

    def cards_for_hand(self, hand: int) -> int:
        """Cards dealt to each player in the 1-based hand of the schedule."""
        if not 1 <= hand <= self.num_hands:
            raise ValueError(f"hand {hand} outside deal schedule of {self.num_hands} hands")
        return self.deal_schedule[hand - 1]

    def is_closed_hand(self, hand: int) -> bool:
        if self.closed_rounds == ClosedRoundRule.ALWAYS:
            return True
        if self.closed_rounds == ClosedRoundRule.LAST_HAND:
            return hand == self.num_hands
        return False


def settings_for_roster(settings: MatchSettings | None, num_players: int) -> MatchSettings:
    """Fill in the default deal schedule for the roster and validate the result."""
    resolved = settings or MatchSettings()
    if not resolved.deal_schedule:
        resolved = resolved.model_copy(
            update={"deal_schedule": pocha_deal_schedule(num_players, resolved.deck_size)},
        )
    validate_settings(resolved, num_players)
    return resolved


def validate_settings(settings: MatchSettings, num_players: int) -> None:
    """Validate that the settings can be played by num_players.

    Raises UnsupportedSettingsError listing every problem found.
    """
    errors: list[str] = []

    if not MIN_PLAYERS <= num_players <= MAX_PLAYERS:
        errors.append(f"num_players={num_players} is not supported ({MIN_PLAYERS}-{MAX_PLAYERS} players)")

    if not settings.deal_schedule:
        errors.append("deal_schedule must contain at least one hand")

    for hand, cards in enumerate(settings.deal_schedule, start=1):
        if cards < 1:
            errors.append(f"hand {hand} deals {cards} cards (must be at least 1)")
        elif cards * num_players > settings.deck_size:
            errors.append(
                f"hand {hand} deals {cards} cards to {num_players} players "
                f"but the deck only has {settings.deck_size}",
            )

    if errors:
        raise UnsupportedSettingsError("; ".join(errors))
