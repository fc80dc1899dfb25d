from __future__ import annotations

import argparse
from typing import Callable


def _debug_enabled(args: argparse.Namespace) -> bool:
    return bool(getattr(args, "debug", False))


def _dbg(args: argparse.Namespace, msg: str) -> None:
    if _debug_enabled(args):
        print(f"[debug] {msg}")


def _engine_debug_sink(args: argparse.Namespace) -> Callable[[str], None] | None:
    if not _debug_enabled(args):
        return None
    return lambda msg: _dbg(args, msg)
