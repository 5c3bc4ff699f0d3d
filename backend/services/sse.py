"""
Server-sent event wire format.

Each delivery event is one `data: <json>` line followed by a blank line.
The JSON is ASCII-only, so no character in it can break the line.
The stream ends with `data: [DONE]`. No `event:` or `id:` fields are used.
"""

from __future__ import annotations

import json

from pydantic import BaseModel

DONE_SENTINEL = "[DONE]"


def encode_event(event: BaseModel) -> str:
    # ASCII escapes keep U+2028, U+2029 and U+0085 from splitting the data line.
    payload = json.dumps(event.model_dump(by_alias=True), separators=(",", ":"))
    return f"data: {payload}\n\n"


def encode_done() -> str:
    return f"data: {DONE_SENTINEL}\n\n"
