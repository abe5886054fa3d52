"""
Shared pydantic base for records parsed from text-service output.

Model responses drift from the requested schema: keys arrive in camelCase,
enum values are misspelled, optional fields come back as null, and single
strings show up where lists were requested. `LenientModel` absorbs that
drift so a missing or malformed optional field is never an error.
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Type, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger("story_evolution.models")


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) is Union:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _enum_type(annotation: Any) -> Optional[Type[Enum]]:
    annotation = _unwrap_optional(annotation)
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return annotation
    return None


def _list_item_type(annotation: Any) -> Optional[Any]:
    annotation = _unwrap_optional(annotation)
    if get_origin(annotation) in (list, List):
        args = get_args(annotation)
        return args[0] if args else Any
    return None


def _model_type(annotation: Any) -> Optional[Type[BaseModel]]:
    annotation = _unwrap_optional(annotation)
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def _scalar_type(annotation: Any) -> Optional[type]:
    annotation = _unwrap_optional(annotation)
    if annotation in (bool, int, float):
        return annotation
    return None


_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "no", "n", "0", "off"}


def coerce_scalar(scalar_type: type, value: Any) -> Optional[Union[bool, int, float]]:
    """Read value as a bool, int or float, accepting strings; None when it doesn't fit."""
    if scalar_type is bool:
        if isinstance(value, bool):
            return value
        normalized = str(value).strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if scalar_type is int:
        if isinstance(value, float) and not value.is_integer():
            return None
        return int(value)
    return float(value)


def coerce_enum(enum_type: Type[Enum], value: Any) -> Optional[Enum]:
    """Match value against enum values case-insensitively; None when it doesn't fit."""
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
    for member in enum_type:
        if str(member.value).lower() == normalized:
            return member
    return None


class LenientModel(BaseModel):
    """Base model accepting camelCase or snake_case keys and tolerating schema drift."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _absorb_drift(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        cleaned = {key: value for key, value in data.items() if value is not None}

        for name, info in cls.model_fields.items():
            for key in (name, info.alias):
                if not key or key not in cleaned:
                    continue
                value = cleaned[key]

                enum_type = _enum_type(info.annotation)
                if enum_type is not None:
                    member = coerce_enum(enum_type, value)
                    if member is not None:
                        cleaned[key] = member
                    elif not info.is_required():
                        logger.debug(f"[{cls.__name__}] Dropping unknown {name} value {value!r}")
                        del cleaned[key]
                    continue

                item_type = _list_item_type(info.annotation)
                if item_type is not None:
                    if isinstance(value, str):
                        cleaned[key] = [value] if value.strip() else []
                    elif isinstance(value, list):
                        item_model = _model_type(item_type)
                        item_enum = _enum_type(item_type)
                        if item_model is not None:
                            cleaned[key] = [v for v in value if isinstance(v, (dict, item_model))]
                        elif item_enum is not None:
                            coerced = [coerce_enum(item_enum, v) for v in value]
                            cleaned[key] = [m for m in coerced if m is not None]
                        elif item_type is str:
                            cleaned[key] = [str(v) for v in value if v is not None]
                    elif not info.is_required():
                        del cleaned[key]
                    continue

                scalar_type = _scalar_type(info.annotation)
                if scalar_type is not None:
                    scalar = coerce_scalar(scalar_type, value)
                    if scalar is not None:
                        cleaned[key] = scalar
                    elif not info.is_required():
                        logger.debug(f"[{cls.__name__}] Dropping malformed {name} value {value!r}")
                        del cleaned[key]
                    continue

                if _model_type(info.annotation) is not None and not isinstance(value, (dict, BaseModel)):
                    if not info.is_required():
                        del cleaned[key]

        return cleaned
