"""
Wire protocol shared with the callmeout daemon.

One JSON document per line, one request and one response per connection:

    {"type": "ping", "payload": null}          -> {"type": "pong"}
    {"type": "analyze_diff", "payload": {...}} -> {"type": "analysis_result", "payload": {...}}
                                                  {"type": "error", "payload": {"message": "..."}}
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

PING = "ping"
PONG = "pong"
ANALYZE_DIFF = "analyze_diff"
ANALYSIS_RESULT = "analysis_result"
ERROR = "error"

DELIMITER = b"\n"


class Trigger:
    MANUAL = "manual"
    SAVE = "save"


@dataclass
class Envelope:
    type: str
    payload: Any = None

    def to_line(self) -> bytes:
        doc = {"type": self.type, "payload": self.payload}
        return json.dumps(doc).encode("utf-8") + DELIMITER

    @classmethod
    def from_line(cls, line: str) -> "Envelope":
        """Decode one response line. Raises ValueError for non-envelopes."""
        data = json.loads(line)
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise ValueError("response is not a {type, payload} object")
        return cls(type=data["type"], payload=data.get("payload"))


@dataclass
class AnalysisRequest:
    diff: str
    files_touched: list[str] = field(default_factory=list)
    active_file: str = ""
    trigger: str = Trigger.MANUAL

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


def error_message(payload: Any) -> str:
    """Extract the message from an error payload, tolerating odd shapes."""
    if isinstance(payload, dict):
        message = payload.get("message")
        if message is not None:
            return str(message)
    if isinstance(payload, str):
        return payload
    return "callmeout: daemon returned an error without a message"
