# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Base class for response DTOs.

Goal: keep every endpoint module's types declarative:
- every field is Optional and defaults to None ("absent in the payload")
- nested objects / timestamps are declared once via field metadata
- from_dict() ignores unknown keys; to_dict() only emits set fields
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from ..request_types import format_timestamp, parse_timestamp

T = TypeVar("T", bound="BaseDTO")

_KIND_KEY = "dto_kind"
_CLS_KEY = "dto_cls"


def opt() -> Any:
    """Plain JSON scalar/list field."""
    return dataclasses.field(default=None)


def opt_timestamp() -> Any:
    """ISO-8601 timestamp field, decoded to an aware datetime."""
    return dataclasses.field(default=None, metadata={_KIND_KEY: "timestamp"})


def opt_nested(cls_name: str) -> Any:
    """Nested DTO field. `cls_name` is resolved lazily so types may reference each other."""
    return dataclasses.field(default=None, metadata={_KIND_KEY: "nested", _CLS_KEY: cls_name})


class BaseDTO:
    """Mixin for frozen dataclass DTOs."""

    # Populated by subclasses that nest other DTOs: {"MarketplacePlan": MarketplacePlan, ...}
    _registry: Dict[str, type] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        BaseDTO._registry[cls.__name__] = cls

    @classmethod
    def from_dict(cls: Type[T], d: Any) -> T:
        """Build from a decoded JSON object. Raises TypeError/ValueError on a shape mismatch."""
        if not isinstance(d, dict):
            raise TypeError(f"{cls.__name__}: expected JSON object, got {type(d).__name__}")
        kwargs: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):  # type: ignore[arg-type]
            if f.name not in d:
                continue
            raw = d[f.name]
            if raw is None:
                continue
            kind = f.metadata.get(_KIND_KEY)
            if kind == "timestamp":
                kwargs[f.name] = parse_timestamp(raw)
            elif kind == "nested":
                nested_cls = BaseDTO._registry[f.metadata[_CLS_KEY]]
                kwargs[f.name] = nested_cls.from_dict(raw)  # type: ignore[attr-defined]
            elif isinstance(raw, list):
                kwargs[f.name] = list(raw)
            else:
                kwargs[f.name] = raw
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(self):  # type: ignore[arg-type]
            v = getattr(self, f.name)
            if v is None:
                continue
            kind = f.metadata.get(_KIND_KEY)
            if kind == "timestamp":
                out[f.name] = format_timestamp(v)
            elif kind == "nested":
                out[f.name] = v.to_dict()
            elif isinstance(v, list):
                out[f.name] = list(v)
            else:
                out[f.name] = v
        return out


def list_of(cls: Type[T]) -> Callable[[Any], List[T]]:
    """Decoder for a JSON array of `cls` objects (order preserved)."""

    def _decode(payload: Any) -> List[T]:
        if not isinstance(payload, list):
            raise TypeError(f"expected JSON array of {cls.__name__}, got {type(payload).__name__}")
        return [cls.from_dict(item) for item in payload]

    return _decode


def one_of(cls: Type[T]) -> Callable[[Any], Optional[T]]:
    """Decoder for a single JSON object (JSON `null` decodes to None)."""

    def _decode(payload: Any) -> Optional[T]:
        if payload is None:
            return None
        return cls.from_dict(payload)

    return _decode
