"""Decode CLI JSON output into typed records.

Blank or whitespace-only output (and a JSON ``null``) decodes to an empty
list. Anything else must be a JSON array of objects whose known fields
have the declared types; otherwise :class:`DecodeError` is raised.
The decoder does not filter records.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, TypeVar

from azcli_inventory.constants import truncate
from azcli_inventory.errors import DecodeError


class Decodable(Protocol):
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Any: ...


T = TypeVar("T", bound=Decodable)


def decode(text: str | None, record_type: type[T]) -> list[T]:
    """Parse ``text`` as a JSON array of ``record_type`` records.

    Args:
        text: Raw command output.
        record_type: A record class exposing ``from_dict``.

    Returns:
        Decoded records in array order.

    Raises:
        DecodeError: ``text`` is non-blank and not a matching JSON array.
    """
    if text is None or not text.strip():
        return []

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(
            f"Output is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            details={"preview": truncate(text.strip())},
        ) from e

    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DecodeError(
            f"Expected a JSON array of {record_type.__name__} records, "
            f"got {type(payload).__name__}",
            details={"preview": truncate(text.strip())},
        )

    records: list[T] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise DecodeError(
                f"Element {index} is not a JSON object (got {type(item).__name__})",
                details={"index": index},
            )
        try:
            records.append(record_type.from_dict(item))
        except (TypeError, ValueError) as e:
            raise DecodeError(
                f"Element {index} does not match {record_type.__name__}: {e}",
                details={"index": index},
            ) from e
    return records


__all__ = ["decode"]
