"""Helpers for turning pydantic validation failures into storefront errors."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from storefront.exceptions import ValidationError

TModel = TypeVar("TModel", bound=pydantic.BaseModel)


def validate_model(model_class: type[TModel], data: Mapping[str, Any]) -> TModel:
    """
    Validate ``data`` into ``model_class``.

    Raises:
        ValidationError: Naming the first offending field
    """
    try:
        return model_class.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(first["msg"], field=field) from e


__all__ = ["validate_model"]
