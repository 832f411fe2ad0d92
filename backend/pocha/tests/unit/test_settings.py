"""Tests for match settings and the standard deal schedule."""

import pytest
from pydantic import ValidationError

from pocha.enums import ClosedRoundRule, PenaltyMode
from pocha.exceptions import UnsupportedSettingsError
from pocha.settings import (
    MAX_DECK_SIZE,
    MAX_HANDS,
    MatchSettings,
    pocha_deal_schedule,
    settings_for_roster,
    validate_settings,
)


class TestDealSchedule:
    def test_four_players_spanish_deck(self):
        schedule = pocha_deal_schedule(4)

        assert schedule[:4] == (1, 1, 1, 1)
        assert schedule[4:12] == (2, 3, 4, 5, 6, 7, 8, 9)
        assert schedule[12:16] == (10, 10, 10, 10)
        assert schedule[16:24] == (9, 8, 7, 6, 5, 4, 3, 2)
        assert schedule[24:] == (1, 1, 1, 1)

    def test_max_hand_fits_deck(self):
        for players in range(2, 9):
            assert max(pocha_deal_schedule(players)) * players <= 40

    def test_small_deck_only_single_card_hands(self):
        assert pocha_deal_schedule(3, deck_size=5) == (1, 1, 1)

    def test_too_few_players(self):
        with pytest.raises(UnsupportedSettingsError, match="at least 2"):
            pocha_deal_schedule(1)

    def test_deck_too_small(self):
        with pytest.raises(UnsupportedSettingsError, match="cannot deal"):
            pocha_deal_schedule(5, deck_size=4)


class TestMatchSettings:
    def test_defaults(self):
        settings = MatchSettings()

        assert settings.closed_rounds == ClosedRoundRule.ALWAYS
        assert settings.miss_penalty_mode == PenaltyMode.NEGATIVE
        assert settings.hit_base_score == 10
        assert settings.hit_bonus_per_trick == 5
        assert settings.miss_penalty_per_trick == 5
        assert settings.auto_finish is True

    def test_is_frozen(self):
        settings = MatchSettings()

        with pytest.raises(ValidationError):
            settings.hit_base_score = 20  # type: ignore[misc]

    def test_negative_penalty_constant_rejected(self):
        with pytest.raises(ValidationError):
            MatchSettings(miss_penalty_per_trick=-5)

    def test_cards_for_hand(self):
        settings = MatchSettings(deal_schedule=(1, 2, 3))

        assert settings.cards_for_hand(2) == 2
        with pytest.raises(ValueError, match="outside deal schedule"):
            settings.cards_for_hand(4)

    @pytest.mark.parametrize(
        ("rule", "expected"),
        [
            (ClosedRoundRule.ALWAYS, [True, True, True]),
            (ClosedRoundRule.LAST_HAND, [False, False, True]),
            (ClosedRoundRule.NEVER, [False, False, False]),
        ],
    )
    def test_closed_hands(self, rule, expected):
        settings = MatchSettings(deal_schedule=(1, 2, 1), closed_rounds=rule)

        assert [settings.is_closed_hand(h) for h in (1, 2, 3)] == expected

    def test_loads_from_json_values(self):
        settings = MatchSettings.model_validate(
            {"deal_schedule": [1, 2], "closed_rounds": "last_hand", "miss_penalty_mode": "zero"},
        )

        assert settings.deal_schedule == (1, 2)
        assert settings.closed_rounds == ClosedRoundRule.LAST_HAND
        assert settings.miss_penalty_mode == PenaltyMode.ZERO


class TestValidateSettings:
    def test_collects_every_problem(self):
        settings = MatchSettings(deal_schedule=(0, 30))

        with pytest.raises(UnsupportedSettingsError) as exc_info:
            validate_settings(settings, 2)

        message = str(exc_info.value)
        assert "hand 1 deals 0 cards" in message
        assert "hand 2 deals 30 cards" in message

    def test_empty_schedule(self):
        with pytest.raises(UnsupportedSettingsError, match="at least one hand"):
            validate_settings(MatchSettings(), 4)

    def test_player_count(self):
        with pytest.raises(UnsupportedSettingsError, match="num_players=9"):
            validate_settings(MatchSettings(deal_schedule=(1,)), 9)


class TestSettingsForRoster:
    def test_keeps_explicit_schedule(self):
        settings = settings_for_roster(MatchSettings(deal_schedule=(2, 2)), 3)

        assert settings.deal_schedule == (2, 2)

    def test_fills_schedule_from_deck_size(self):
        settings = settings_for_roster(MatchSettings(deck_size=48), 4)

        assert max(settings.deal_schedule) == 12


class TestSizeLimits:
    def test_deck_larger_than_double_deck_rejected(self):
        with pytest.raises(ValidationError, match="deck_size"):
            MatchSettings(deck_size=1_000_000_000)

    def test_largest_deck_builds_bounded_schedule(self):
        settings = settings_for_roster(MatchSettings(deck_size=MAX_DECK_SIZE), 2)

        assert max(settings.deal_schedule) == MAX_DECK_SIZE // 2
        assert settings.num_hands <= MAX_HANDS

    def test_schedule_builder_refuses_oversized_deck(self):
        with pytest.raises(UnsupportedSettingsError, match="maximum"):
            pocha_deal_schedule(2, deck_size=MAX_DECK_SIZE + 1)

    def test_too_many_hands_rejected(self):
        with pytest.raises(ValidationError, match="deal_schedule"):
            MatchSettings(deal_schedule=(1,) * (MAX_HANDS + 1))
