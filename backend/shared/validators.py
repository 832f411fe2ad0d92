"""Validation helpers for environment-driven settings."""

import json
from typing import Any, ClassVar

from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, EnvSettingsSource
from pydantic_settings.sources.base import PydanticBaseSettingsSource


def _checked(items: list[str], *, allow_empty: bool) -> list[str]:
    if not items and not allow_empty:
        raise ValueError("String list value must not be empty")
    return items


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a string list given as a list, a JSON array or comma-separated text.

    Blank CSV segments are dropped. A blank string is an empty list, which
    is rejected unless allow_empty is set. Malformed JSON raises ValueError.
    """
    if isinstance(value, list):
        return _checked(value, allow_empty=allow_empty)

    stripped = value.strip()
    if not stripped.startswith("["):
        return _checked([item.strip() for item in stripped.split(",") if item.strip()], allow_empty=allow_empty)

    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON array: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError("JSON value must be an array of strings")
    return _checked(parsed, allow_empty=allow_empty)


class StringListSettings(BaseSettings):
    """Settings base whose list fields named in string_list_fields accept CSV from the environment."""

    string_list_fields: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands string-list fields to validators as raw text.

    pydantic-settings JSON-decodes list-typed env values before validators
    run, which rejects plain CSV. Fields listed in the settings class's
    string_list_fields skip that step so parse_string_list sees the text.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        raw_fields = getattr(self.settings_cls, "string_list_fields", frozenset())
        if field_name in raw_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
