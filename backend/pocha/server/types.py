from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocha.models import Player
from pocha.settings import MAX_PLAYERS, MIN_PLAYERS, MatchSettings


class PlayerSpec(BaseModel):
    """Player entry for match creation. player_id defaults to a slot-based id."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=50)
    player_id: str | None = Field(default=None, min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")


class CreateMatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    players: list[PlayerSpec] = Field(min_length=MIN_PLAYERS, max_length=MAX_PLAYERS)
    settings: MatchSettings | None = None

    @model_validator(mode="after")
    def _validate_players(self) -> Self:
        ids = [p.player_id for p in self.players if p.player_id is not None]
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate player_id in player list")
        return self

    def roster(self) -> list[Player]:
        """Players in registration order; missing ids become p<slot>, skipping ids already taken."""
        taken = {p.player_id for p in self.players if p.player_id is not None}
        roster: list[Player] = []
        for slot, spec in enumerate(self.players, 1):
            player_id = spec.player_id
            if player_id is None:
                n = slot
                while f"p{n}" in taken:
                    n += 1
                player_id = f"p{n}"
                taken.add(player_id)
            roster.append(Player(player_id=player_id, name=spec.name))
        return roster
