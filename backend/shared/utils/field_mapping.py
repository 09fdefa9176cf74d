"""
snake_case <-> camelCase mirror fields.

Storage uses snake_case. Front-ends written against older payloads read and
write a few attributes in camelCase, so reads carry both spellings and writes
accept either. The table below is fixed: stored data and existing clients
depend on it.
"""

from typing import Any

MIRROR_FIELDS: dict[str, str] = {
    "is_active": "isActive",
    "all_you_can_eat": "allYouCanEat",
    "cover_charge_per_person": "coverChargePerPerson",
}

CAMEL_TO_SNAKE: dict[str, str] = {camel: snake for snake, camel in MIRROR_FIELDS.items()}


def add_mirror_fields(row: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``row`` with the camelCase mirror of every mapped field present."""
    out = dict(row)
    for snake, camel in MIRROR_FIELDS.items():
        if snake in out:
            out[camel] = out[snake]
    return out


def to_storage_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Copy of ``payload`` with camelCase mirror keys folded into their snake_case
    column. When both spellings are sent, the camelCase value wins.
    """
    out = {key: value for key, value in payload.items() if key not in CAMEL_TO_SNAKE}
    for camel, snake in CAMEL_TO_SNAKE.items():
        if camel in payload:
            out[snake] = payload[camel]
    return out
