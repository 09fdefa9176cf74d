"""
Redis channel naming for row changes.

    changes:<table>                    every change on the table
    changes:<table>:<column>=<value>   changes whose row has column == value
"""

from __future__ import annotations

from typing import Any

from .event_types import FILTER_COLUMNS

CHANNEL_PREFIX = "changes"


def _validate_table(table: str) -> None:
    if table not in FILTER_COLUMNS:
        raise ValueError(f"Table {table!r} is not watched for changes")


def channel_table(table: str) -> str:
    """Unscoped channel for every change on ``table``."""
    _validate_table(table)
    return f"{CHANNEL_PREFIX}:{table}"


def channel_filtered(table: str, column: str, value: Any) -> str:
    """Channel for changes on ``table`` whose row has ``column == value``."""
    _validate_table(table)
    if column not in FILTER_COLUMNS[table]:
        raise ValueError(f"Column {column!r} of {table!r} has no filtered channel")
    if value is None:
        raise ValueError(f"Filter value for {table}.{column} must not be None")
    return f"{CHANNEL_PREFIX}:{table}:{column}={value}"


def channels_for_row(table: str, *rows: dict[str, Any]) -> list[str]:
    """
    Every channel a change to ``rows`` must reach.

    An UPDATE passes both the old and the new row so that subscribers of the
    previous filter value also hear about the change.
    """
    channels = [channel_table(table)]
    for column in FILTER_COLUMNS[table]:
        for row in rows:
            value = row.get(column) if row else None
            if value is None:
                continue
            channel = channel_filtered(table, column, value)
            if channel not in channels:
                channels.append(channel)
    return channels
