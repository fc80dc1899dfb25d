from __future__ import annotations

import argparse
import json
from datetime import date
from pathlib import Path
from typing import Any, List

from staymaster.cli._debug_utils import _dbg, _engine_debug_sink
from staymaster.core.engine.debug import set_engine_debug
from staymaster.core.engine.facade import calculate_goal
from staymaster.core.engine.serialization import calculation_to_dict


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Calculate one residency goal from a trip list")
    parser.add_argument("--goal-config", required=True, help="Goal config JSON file")
    parser.add_argument("--trips", default=None, help="Trips JSON file (list of objects)")
    parser.add_argument(
        "--trip",
        action="append",
        default=[],
        metavar="OUT:IN",
        help="Trip as departure and return dates (YYYY-MM-DD:YYYY-MM-DD); repeatable",
    )
    parser.add_argument("--start-date", required=True, help="Tracking start date (YYYY-MM-DD)")
    parser.add_argument("--as-of-date", required=True, help="As-of date (YYYY-MM-DD)")
    parser.add_argument("--goal-id", default="", help="Goal identifier echoed in the result")
    parser.add_argument("--json", action="store_true", dest="as_json", help="Print the full result as JSON")
    parser.add_argument("--debug", action="store_true", help="Print engine diagnostics")
    return parser.parse_args(argv)


def _load_json(path: str) -> Any:
    with Path(path).open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _parse_date(value: str, flag: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{flag} must be YYYY-MM-DD, got {value!r}") from None


def _trips_from_flags(values: List[str]) -> List[dict]:
    trips = []
    for i, value in enumerate(values):
        out_date, sep, in_date = value.partition(":")
        if not sep:
            raise ValueError(f"--trip must be OUT:IN, got {value!r}")
        trips.append({"id": f"trip-{i + 1}", "out_date": out_date or None, "in_date": in_date or None})
    return trips


def _load_trips(args: argparse.Namespace) -> List[Any]:
    if args.trips and args.trip:
        raise ValueError("use either --trips OR --trip")
    if args.trips:
        payload = _load_json(args.trips)
        if not isinstance(payload, list):
            raise ValueError("trips file must contain a JSON list")
        return payload
    return _trips_from_flags(args.trip)


def print_summary(result: dict) -> None:
    print(f"SUMMARY goal_type={result['goalType']}")
    print(f"SUMMARY status={result['status']}")
    print(f"SUMMARY progress_percent={result['progressPercent']}")
    print(f"SUMMARY eligibility_date={result['eligibilityDate']}")
    print(f"SUMMARY days_until_eligible={result['daysUntilEligible']}")
    for metric in result["metrics"]:
        limit = "" if metric["limit"] is None else f" limit={metric['limit']}"
        print(f"METRIC key={metric['key']} value={metric['value']} status={metric['status']}{limit}")
    for warning in result["warnings"]:
        print(f"WARNING severity={warning['severity']} title={warning['title']!r}")


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    set_engine_debug(_engine_debug_sink(args))
    try:
        start_date = _parse_date(args.start_date, "--start-date")
        as_of_date = _parse_date(args.as_of_date, "--as-of-date")
        config = _load_json(args.goal_config)
        trips = _load_trips(args)
        _dbg(args, f"loaded trips={len(trips)} config_type={config.get('type') if isinstance(config, dict) else None}")
        calculation = calculate_goal(trips, config, start_date, as_of_date, goal_id=args.goal_id)
    except (ValueError, OSError) as exc:
        print(f"SUMMARY status=ERROR message={exc}")
        raise SystemExit(2)
    finally:
        set_engine_debug(None)

    result = calculation_to_dict(calculation)
    if args.as_json:
        print(json.dumps(result, indent=2, sort_keys=True))
        return
    print_summary(result)


if __name__ == "__main__":
    main()
