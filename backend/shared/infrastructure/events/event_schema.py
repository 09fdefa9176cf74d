"""
Change event schema.

A ChangeEvent is what subscribers of the change-notification stream receive:
the table, the kind of change and the row before and after it.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .event_types import FILTER_COLUMNS
from shared.config.constants import ChangeType


@dataclass
class ChangeEvent:
    """
    One committed row change.

    ``record`` holds the row after the change (empty for DELETE), and
    ``old_record`` the row before it (empty for INSERT).
    """

    table: str
    type: str
    record: dict[str, Any] = field(default_factory=dict)
    old_record: dict[str, Any] = field(default_factory=dict)
    ts: str | None = None
    v: int = 1

    def __post_init__(self) -> None:
        if self.table not in FILTER_COLUMNS:
            raise ValueError(f"Unknown table for change event: {self.table!r}")

        if self.type not in ChangeType.ALL:
            raise ValueError(f"Change type must be one of {ChangeType.ALL}, got {self.type!r}")

        if not isinstance(self.record, dict) or not isinstance(self.old_record, dict):
            raise ValueError("Change event record and old_record must be dicts")

        if self.type == ChangeType.DELETE and not self.old_record:
            raise ValueError("DELETE change events need old_record")

        if self.type != ChangeType.DELETE and not self.record:
            raise ValueError(f"{self.type} change events need record")

    @property
    def row(self) -> dict[str, Any]:
        """The row the change is about: new values, or old ones for a DELETE."""
        return self.record or self.old_record

    def to_json(self) -> str:
        data = asdict(self)
        data["ts"] = data["ts"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeEvent":
        """Deserialize; validation runs in ``__post_init__``."""
        data = json.loads(json_str)
        return cls(**data)
