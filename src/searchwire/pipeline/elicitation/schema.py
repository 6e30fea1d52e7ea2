# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Primitive-only schemas for elicitation requests.

MCP clients render elicitation forms from a flat object schema whose
properties are strings, numbers, booleans or string enums. The field
classes here produce that JSON schema and validate the values a client
sends back. Validation is strict: a wrong type is a violation, not
something to coerce.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ...core.exceptions import ElicitationValidationError

STRING_FORMATS = ("email", "uri", "date", "date-time")


def _base_schema(kind: str, title: str | None, description: str | None, default: Any) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": kind}
    if title:
        schema["title"] = title
    if description:
        schema["description"] = description
    if default is not None:
        schema["default"] = default
    return schema


@dataclass(frozen=True)
class StringField:
    title: str | None = None
    description: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    format: str | None = None
    pattern: str | None = None
    default: str | None = None

    def __post_init__(self) -> None:
        if self.format is not None and self.format not in STRING_FORMATS:
            raise ValueError(f"Unsupported string format: {self.format}")

    def to_json_schema(self) -> dict[str, Any]:
        schema = _base_schema("string", self.title, self.description, self.default)
        if self.min_length is not None:
            schema["minLength"] = self.min_length
        if self.max_length is not None:
            schema["maxLength"] = self.max_length
        if self.format:
            schema["format"] = self.format
        return schema

    def violations(self, value: Any) -> list[str]:
        if not isinstance(value, str):
            return [f"expected a string, got {type(value).__name__}"]
        problems = []
        if self.min_length is not None and len(value) < self.min_length:
            problems.append(f"must be at least {self.min_length} characters")
        if self.max_length is not None and len(value) > self.max_length:
            problems.append(f"must be at most {self.max_length} characters")
        if self.pattern is not None and not re.fullmatch(self.pattern, value):
            problems.append(f"must match {self.pattern}")
        return problems


@dataclass(frozen=True)
class NumberField:
    title: str | None = None
    description: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False
    default: float | None = None

    def to_json_schema(self) -> dict[str, Any]:
        schema = _base_schema("integer" if self.integer else "number", self.title, self.description, self.default)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        return schema

    def violations(self, value: Any) -> list[str]:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return [f"expected a number, got {type(value).__name__}"]
        problems = []
        if self.integer and not float(value).is_integer():
            problems.append("must be an integer")
        if self.minimum is not None and value < self.minimum:
            problems.append(f"must be >= {self.minimum:g}")
        if self.maximum is not None and value > self.maximum:
            problems.append(f"must be <= {self.maximum:g}")
        return problems


@dataclass(frozen=True)
class BooleanField:
    title: str | None = None
    description: str | None = None
    default: bool | None = None

    def to_json_schema(self) -> dict[str, Any]:
        return _base_schema("boolean", self.title, self.description, self.default)

    def violations(self, value: Any) -> list[str]:
        if not isinstance(value, bool):
            return [f"expected a boolean, got {type(value).__name__}"]
        return []


@dataclass(frozen=True)
class EnumField:
    options: tuple[str, ...]
    title: str | None = None
    description: str | None = None
    option_names: tuple[str, ...] | None = None
    default: str | None = None

    def __post_init__(self) -> None:
        if not self.options:
            raise ValueError("EnumField needs at least one option")
        if self.option_names is not None and len(self.option_names) != len(self.options):
            raise ValueError("option_names must match options one to one")

    def to_json_schema(self) -> dict[str, Any]:
        schema = _base_schema("string", self.title, self.description, self.default)
        schema["enum"] = list(self.options)
        if self.option_names:
            schema["enumNames"] = list(self.option_names)
        return schema

    def violations(self, value: Any) -> list[str]:
        if not isinstance(value, str):
            return [f"expected a string, got {type(value).__name__}"]
        if value not in self.options:
            return [f"must be one of {', '.join(self.options)}"]
        return []


PrimitiveField = StringField | NumberField | BooleanField | EnumField


def _humanize(name: str) -> str:
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", name).replace("_", " ")
    return words[:1].upper() + words[1:].lower()


def primitive_from_json_schema(name: str, prop: Mapping[str, Any]) -> PrimitiveField | None:
    """Derive a primitive field from a JSON schema property.

    Returns None for anything that is not a plain string, number, integer,
    boolean or string enum (arrays, objects, unions).
    """
    title = _humanize(name)
    description = prop.get("description")
    enum = prop.get("enum")
    if enum is not None:
        if all(isinstance(option, str) for option in enum):
            return EnumField(options=tuple(enum), title=title, description=description)
        return None

    kind = prop.get("type")
    if kind == "string":
        string_format = prop.get("format")
        return StringField(
            title=title,
            description=description,
            min_length=prop.get("minLength"),
            max_length=prop.get("maxLength"),
            format=string_format if string_format in STRING_FORMATS else None,
            pattern=prop.get("pattern"),
        )
    if kind in ("number", "integer"):
        return NumberField(
            title=title,
            description=description,
            minimum=prop.get("minimum"),
            maximum=prop.get("maximum"),
            integer=kind == "integer",
        )
    if kind == "boolean":
        return BooleanField(title=title, description=description)
    return None


def with_default(primitive: PrimitiveField, default: Any) -> PrimitiveField:
    """Copy of ``primitive`` with a new default, or unchanged if it would be invalid."""
    if default is None or primitive.violations(default):
        return primitive
    values = {name: getattr(primitive, name) for name in primitive.__dataclass_fields__}
    values["default"] = default
    return type(primitive)(**values)


@dataclass(frozen=True)
class ElicitationSchema:
    """Flat object schema of primitive properties."""

    properties: Mapping[str, PrimitiveField]
    required: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        unknown = [name for name in self.required if name not in self.properties]
        if unknown:
            raise ValueError(f"Required fields missing from properties: {unknown}")

    def to_requested_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {name: prop.to_json_schema() for name, prop in self.properties.items()},
        }
        if self.required:
            schema["required"] = list(self.required)
        return schema

    def with_defaults(self, values: Mapping[str, Any]) -> ElicitationSchema:
        """Seed property defaults from previously known values."""
        properties = {
            name: with_default(prop, values.get(name)) if name in values else prop
            for name, prop in self.properties.items()
        }
        return ElicitationSchema(properties=properties, required=self.required)

    def validate(self, content: Mapping[str, Any] | None) -> dict[str, Any]:
        """Check returned content against the schema.

        Returns:
            The validated fields (unset optional fields omitted).

        Raises:
            ElicitationValidationError: listing every violation.
        """
        content = dict(content or {})
        errors: list[dict[str, Any]] = []

        for name in content:
            if name not in self.properties:
                errors.append({"field": name, "error": "not part of the requested schema"})

        for name in self.required:
            if content.get(name) is None:
                errors.append({"field": name, "error": "is required"})

        validated: dict[str, Any] = {}
        for name, prop in self.properties.items():
            value = content.get(name)
            if value is None:
                continue
            problems = prop.violations(value)
            errors.extend({"field": name, "error": problem} for problem in problems)
            if not problems:
                validated[name] = int(value) if isinstance(prop, NumberField) and prop.integer else value

        if errors:
            summary = "; ".join(f"{e['field']} {e['error']}" for e in errors)
            raise ElicitationValidationError(f"Elicited input is invalid: {summary}", errors=errors)
        return validated
