"""Field-set files: the semantic fields a spreadsheet is reconciled against.

A field set is JSON or TOML::

    [[fields]]
    field_key = "email"
    display_name = "Employee Email"
    value_type = "email"
    required = true
    order = 2

JSON may be either ``{"fields": [...]}`` or a bare list. ``fieldKey``-style
camelCase keys are accepted as aliases.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from sheetbase.exceptions import ConfigError
from sheetbase.models import SemanticField


class FieldDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    field_key: str = Field(min_length=1, validation_alias=AliasChoices("field_key", "fieldKey", "key"))
    display_name: str | None = Field(default=None, validation_alias=AliasChoices("display_name", "displayName", "label"))
    value_type: str = Field(default="text", validation_alias=AliasChoices("value_type", "valueType", "type"))
    required: bool = False
    order: int | None = None
    validation_rules: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("validation_rules", "validationRules", "rules")
    )

    @field_validator("field_key")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("field_key must not be blank")
        return value


class FieldSet(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    fields: list[FieldDefinition]


def to_semantic_fields(definitions: Sequence[FieldDefinition]) -> list[SemanticField]:
    """Convert definitions; missing ``order`` falls back to declaration position."""
    seen: set[str] = set()
    out: list[SemanticField] = []
    for position, item in enumerate(definitions):
        if item.field_key in seen:
            raise ConfigError(f"Duplicate field_key '{item.field_key}' in field set")
        seen.add(item.field_key)
        out.append(
            SemanticField(
                field_key=item.field_key,
                display_name=item.display_name or item.field_key,
                value_type=item.value_type,
                required=item.required,
                order=position if item.order is None else item.order,
                validation_rules=dict(item.validation_rules),
            )
        )
    return out


def parse_field_set(data: Any) -> list[SemanticField]:
    if isinstance(data, list):
        data = {"fields": data}
    try:
        field_set = FieldSet.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid field set: {exc}") from exc
    return to_semantic_fields(field_set.fields)


def load_field_set(path: Path) -> list[SemanticField]:
    """Load a ``.json`` or ``.toml`` field set from ``path``."""
    suffix = path.suffix.lower()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read field set {path}: {exc}") from exc

    try:
        if suffix == ".toml":
            data: Any = tomllib.loads(raw)
        elif suffix == ".json":
            data = json.loads(raw)
        else:
            raise ConfigError(f"Unsupported field set format '{suffix}' (use .json or .toml)")
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Field set {path} is not valid {suffix[1:].upper()}: {exc}") from exc

    return parse_field_set(data)


__all__ = ["FieldDefinition", "FieldSet", "load_field_set", "parse_field_set", "to_semantic_fields"]
