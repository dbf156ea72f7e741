"""
Event Schema.

Every change notification uses the same envelope: {type, data, timestamp}.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any

from .event_types import ALL_EVENT_TYPES


@dataclass
class ChangeEvent:
    """
    Envelope published to observers after a committed mutation.

    'data' holds the full resulting order, except for deletions where it
    only carries {"id": ...}.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str | None = None

    def __post_init__(self) -> None:
        if not self.type or not isinstance(self.type, str):
            raise ValueError("Event type must be a non-empty string")

        if self.type not in ALL_EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.type}")

        if not isinstance(self.data, dict):
            raise ValueError("Event data must be a dict")

        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeEvent":
        data = json.loads(json_str)
        return cls(**data)
