from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from jobtracker.errors import ErrorCode

EventName = Literal["delta", "done", "error"]
TERMINAL_EVENTS = frozenset({"done", "error"})

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@dataclass(slots=True, frozen=True)
class StreamEvent:
    event: EventName
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS


def format_sse(event: StreamEvent) -> str:
    payload = json.dumps(event.data, ensure_ascii=False)
    return f"event: {event.event}\ndata: {payload}\n\n"


def delta_event(content: str) -> StreamEvent:
    return StreamEvent("delta", {"content": content})


def done_event(*, version_id: str, kind: str, application_id: str) -> StreamEvent:
    return StreamEvent("done", {"draftId": version_id, "kind": kind, "applicationId": application_id})


def error_event(code: ErrorCode, message: str, details: Any = None) -> StreamEvent:
    data: dict[str, Any] = {"code": str(code), "message": message}
    if details is not None:
        data["details"] = details
    return StreamEvent("error", data)


def parse_sse(body: str) -> list[StreamEvent]:
    """Split an SSE body back into events; used by the CLI consumer and tests."""
    events: list[StreamEvent] = []
    for block in body.split("\n\n"):
        name = ""
        data_lines: list[str] = []
        for line in block.splitlines():
            if line.startswith("event:"):
                name = line[len("event:"):].strip()
            elif line.startswith("data:"):
                data_lines.append(line[len("data:"):].strip())
        if name and data_lines:
            events.append(StreamEvent(name, json.loads("\n".join(data_lines))))
    return events
