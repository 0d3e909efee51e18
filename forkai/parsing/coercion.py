"""Lenient schema coercion for generated payloads.

Generators do not reliably follow the JSON shape they are asked for: numbers
arrive as strings ("25 min"), lists arrive as sentences, keys go missing.
LenientModel walks the raw dict against its declared fields before pydantic's
own validation runs, keeps every value that has (or can be coerced to) the
expected kind, and drops the rest so that the field default applies. The
result always satisfies the model's constraints.
"""

import math
import re
import types
from enum import Enum
from typing import Any, ClassVar, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, ValidationInfo, model_validator

from forkai.utils.logger import logger

MISSING = object()

_LEADING_NUMBER = re.compile(r"^\s*([-+]?\d+(?:[.,]\d+)?)")

_BOUND_CHECKS = (
    ("gt", lambda value, bound: value > bound),
    ("ge", lambda value, bound: value >= bound),
    ("lt", lambda value, bound: value < bound),
    ("le", lambda value, bound: value <= bound),
)


def _leading_number(value: Any) -> Any:
    """Return the numeric prefix of value as float, or MISSING."""
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        candidate = value
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return MISSING
        candidate = match.group(1).replace(",", ".")
    else:
        return MISSING
    try:
        number = float(candidate)
    except OverflowError:
        return MISSING
    return number if math.isfinite(number) else MISSING


def coerce_int(value: Any) -> Any:
    """Lenient integer coercion: 30, 30.0, "30", "30 min" all give 30."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = _leading_number(value)
    return MISSING if number is MISSING else int(number)


def coerce_float(value: Any) -> Any:
    """Lenient float coercion: 12.5, "12.5", "12,5 g" all give 12.5."""
    return _leading_number(value)


def coerce_value(value: Any, annotation: Any) -> Any:
    """Coerce value to annotation, returning MISSING when it cannot be used."""
    origin = get_origin(annotation)

    if origin in (Union, types.UnionType):
        args = get_args(annotation)
        if value is None:
            return None if type(None) in args else MISSING
        for arg in args:
            if arg is type(None):
                continue
            coerced = coerce_value(value, arg)
            if coerced is not MISSING:
                return coerced
        return MISSING

    if origin is list:
        if not isinstance(value, list):
            return MISSING
        item_type = (get_args(annotation) or (Any,))[0]
        items = (coerce_value(item, item_type) for item in value)
        return [item for item in items if item is not MISSING]

    if annotation is Any or not isinstance(annotation, type):
        return value
    if value is None:
        return MISSING
    if issubclass(annotation, BaseModel):
        return value if isinstance(value, dict) else MISSING
    if issubclass(annotation, Enum):
        candidate = value.strip().lower() if isinstance(value, str) else value
        try:
            return annotation(candidate)
        except ValueError:
            return MISSING
    if annotation is bool:
        return value if isinstance(value, bool) else MISSING
    if annotation is int:
        return coerce_int(value)
    if annotation is float:
        return coerce_float(value)
    if annotation is str:
        return value if isinstance(value, str) and value.strip() else MISSING
    return value


def within_bounds(value: Any, metadata: list) -> bool:
    """Check a numeric value against gt/ge/lt/le constraints from Field metadata."""
    if not isinstance(value, (int, float)):
        return True
    for constraint in metadata:
        for attr, check in _BOUND_CHECKS:
            bound = getattr(constraint, attr, None)
            if bound is not None and not check(value, bound):
                return False
    return True


class LenientModel(BaseModel):
    """Base for every entity parsed out of generated text.

    Subclasses declare fields with defaults; context_defaults maps a field name
    to a validation-context key whose value replaces the static default, e.g.
    the servings the caller asked for.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    context_defaults: ClassVar[dict[str, str]] = {}

    @model_validator(mode="before")
    @classmethod
    def coerce_to_schema(cls, data: Any, info: ValidationInfo) -> Any:
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            logger.debug(f"Defaulted whole {cls.__name__}: expected object, got {type(data).__name__}")
            data = {}
        context = info.context or {}

        cleaned: dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            key = field.alias or name
            raw = data.get(key, data.get(name, MISSING))
            value = MISSING if raw is MISSING else coerce_value(raw, field.annotation)
            if value is not MISSING and not within_bounds(value, field.metadata):
                value = MISSING

            if value is MISSING:
                context_key = cls.context_defaults.get(name)
                if context_key and context.get(context_key) is not None:
                    value = context[context_key]
                if raw is not MISSING:
                    logger.debug(f"Defaulted {cls.__name__}.{key}: unusable value {str(raw)[:80]!r}")
                else:
                    logger.debug(f"Defaulted {cls.__name__}.{key}: missing")

            if value is not MISSING:
                cleaned[key] = value
        return cleaned
