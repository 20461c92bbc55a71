"""
JSON serialization utilities for storefront documents.

Documents are persisted as plain JSON. Callers are free to put UUIDs,
datetimes, decimals or enums into document fields; this encoder turns them
into their JSON-friendly form on the way to disk.

Example:
    >>> from storefront.serialization import json_dumps, json_loads
    >>> from uuid import uuid4
    >>>
    >>> data = {"id": uuid4()}
    >>> json_str = json_dumps(data)
    >>> parsed = json_loads(json_str)
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class StorefrontJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for document field values.

    Supports:
    - UUID objects: Converted to string representation
    - datetime/date objects: Converted to ISO 8601 format string
    - Decimal: Converted to float (prices are stored as JSON numbers)
    - Enum: Converted to its value
    - pydantic models: Dumped by alias in JSON mode
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable formats.

        Raises:
            TypeError: If object type is not supported
        """
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime | date):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json", by_alias=True)
        return super().default(obj)


def json_dumps(obj: Any, indent: int | None = None) -> str:
    """
    Serialize object to JSON string with storefront type support.

    Args:
        obj: Object to serialize
        indent: Indentation level (None or 0 for compact output)

    Returns:
        JSON string representation
    """
    return json.dumps(
        obj,
        cls=StorefrontJSONEncoder,
        indent=indent or None,
        ensure_ascii=False,
    )


def json_loads(s: str) -> Any:
    """
    Deserialize JSON string to Python object.

    Note: This is a simple wrapper around json.loads. Timestamps stay ISO
    strings; typed views (pydantic models) parse them when needed.

    Raises:
        json.JSONDecodeError: If the text is not valid JSON
    """
    return json.loads(s)


__all__ = [
    "StorefrontJSONEncoder",
    "json_dumps",
    "json_loads",
]
