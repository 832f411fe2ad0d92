"""Local scorekeeper server configuration via environment variables."""

from typing import ClassVar

from pydantic import Field, field_validator

from shared.validators import StringListSettings, parse_string_list


class PochaServerSettings(StringListSettings):
    model_config = {"env_prefix": "POCHA_"}
    string_list_fields: ClassVar[frozenset[str]] = frozenset({"cors_origins"})

    data_dir: str = Field(default="backend/data", min_length=1)
    log_dir: str = Field(default="backend/logs", min_length=1)
    # the PWA dev server; production builds are served from the same origin
    cors_origins: list[str] = ["http://localhost:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)
