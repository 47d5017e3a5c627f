"""Utility for dataclass serialization and construction from loose mappings."""

import dataclasses
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin, get_type_hints

import numpy as np

T = TypeVar("T", bound="SerializableMixin")


class SerializableMixin:
    """Mixin adding dict conversion to dataclasses.

    Handles:
    - datetime objects (ISO format)
    - numpy scalars (converted to plain Python numbers)
    - nested dataclasses (recursive conversion)
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert dataclass to a plain dictionary."""
        def _dict_factory(data: List[tuple]) -> Dict[str, Any]:
            result = {}
            for key, value in data:
                if isinstance(value, datetime):
                    result[key] = value.isoformat()
                elif isinstance(value, np.generic):
                    result[key] = value.item()
                else:
                    result[key] = value
            return result

        return dataclasses.asdict(self, dict_factory=_dict_factory)

    @classmethod
    def from_dict(cls: Type[T], data: Optional[Mapping[str, Any]]) -> T:
        """Create an instance from a mapping, ignoring unknown keys and casting scalars."""
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must be a dataclass to use SerializableMixin")

        field_types = get_type_hints(cls)
        init_args = {}
        for field in dataclasses.fields(cls):
            if not data or field.name not in data:
                continue
            init_args[field.name] = cls._convert_value(data[field.name], field_types[field.name])

        return cls(**init_args)

    @staticmethod
    def _convert_value(value: Any, target_type: Type) -> Any:
        """Convert a loose value (e.g. from an INI file) to the declared field type."""
        if value is None:
            return None

        origin = get_origin(target_type)
        args = get_args(target_type)

        # Optional[T]
        if origin is Union and type(None) in args:
            non_none_args = [arg for arg in args if arg is not type(None)]
            if len(non_none_args) == 1:
                return SerializableMixin._convert_value(value, non_none_args[0])

        if target_type is bool:
            if isinstance(value, str):
                return value.strip().lower() in ('true', 'yes', 'on', '1')
            return bool(value)
        if target_type is int and not isinstance(value, bool):
            number = float(value)
            if math.isfinite(number) and number.is_integer():
                return int(number)
            raise ValueError(f"Expected an integer, got {value!r}")
        if target_type is float and not isinstance(value, bool):
            return float(value)

        # List[T] of nested dataclasses
        if origin in (list, List) and args and isinstance(value, (list, tuple)):
            return [SerializableMixin._convert_value(item, args[0]) for item in value]

        if target_type is datetime and isinstance(value, str):
            return datetime.fromisoformat(value)

        if dataclasses.is_dataclass(target_type) and isinstance(value, dict):
            if issubclass(target_type, SerializableMixin):
                return target_type.from_dict(value)
            return target_type(**value)

        return value
