"""Engine diagnostics hook.

Calculators report single-line KEY=value diagnostics through emit_debug; nothing is
printed unless a caller installs a sink with set_engine_debug.
"""

from __future__ import annotations

from typing import Callable

_DEBUG_FN: Callable[[str], None] | None = None


def set_engine_debug(fn: Callable[[str], None] | None) -> None:
    global _DEBUG_FN
    _DEBUG_FN = fn


def debug_enabled() -> bool:
    return _DEBUG_FN is not None


def emit_debug(msg: str) -> None:
    if _DEBUG_FN is not None:
        _DEBUG_FN(msg)
