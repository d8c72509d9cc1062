"""
Payload codec for the timelock program's own governed instructions.

Payloads are canonical JSON: ``{"instruction": NAME, "args": {...}}``.
Queued operations addressed to other programs carry payloads the engine
never looks at; only the timelock program decodes these.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import InvalidArgument
from .util import canonical_json

SET_AUTHORITY = "set_authority"
SET_DELAY = "set_delay"

# instruction name -> required argument names
GOVERNED_INSTRUCTIONS: dict[str, frozenset[str]] = {
    SET_AUTHORITY: frozenset({"new_authority"}),
    SET_DELAY: frozenset({"delay_ticks"}),
}


def encode_instruction(name: str, **args: Any) -> bytes:
    required = GOVERNED_INSTRUCTIONS.get(name)
    if required is None:
        raise InvalidArgument(f"unknown instruction: {name}")
    if set(args) != required:
        raise InvalidArgument(f"{name} takes {sorted(required)}, got {sorted(args)}")
    return canonical_json({"instruction": name, "args": args})


def decode_instruction(payload: bytes) -> tuple[str, dict[str, Any]]:
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidArgument(f"malformed instruction payload: {e}") from e
    if not isinstance(data, dict):
        raise InvalidArgument("instruction payload must be an object")

    name = data.get("instruction")
    args = data.get("args")
    required = GOVERNED_INSTRUCTIONS.get(name) if isinstance(name, str) else None
    if required is None:
        raise InvalidArgument(f"unknown instruction: {name!r}")
    if not isinstance(args, dict) or set(args) != required:
        raise InvalidArgument(f"{name} takes {sorted(required)}")
    return name, args
