"""
Crateship — Release gate.

A push only publishes when its latest non-merge commit message starts
with the gate prefix. Plain prefix match: case-sensitive, no regex,
nothing anchored at the end.
"""

from __future__ import annotations

DEFAULT_GATE_PREFIX = "Version change"


def is_version_change(message: str, prefix: str = DEFAULT_GATE_PREFIX) -> bool:
    return bool(prefix) and message.startswith(prefix)
