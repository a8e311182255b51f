"""
Command-line entry point:

    tactics-sim resolve thermopylae
    tactics-sim resolve path/to/scenario.json --seed 7 --json
    tactics-sim serve --port 8000

Bundled scenarios can be named without their path or extension.
"""
from __future__ import annotations

import argparse
import logging
import socket
import sys
from pathlib import Path

import uvicorn

from tactics_sim.rules.ruleset import RulesError
from tactics_sim.rules.scenario import SCENARIO_DIR, BattleSetup, ScenarioError, load_scenario
from tactics_sim.server.api.mappers import result_response
from tactics_sim.systems.battle import resolver_for

logger = logging.getLogger(__name__)


def find_available_port(host: str, start_port: int, *, max_tries: int = 50) -> tuple[int, bool]:
    """
    Probe sequential ports starting from start_port.
    Returns (port, did_fallback).
    """
    if max_tries < 1:
        raise ValueError("max_tries must be >= 1")

    last_error: OSError | None = None
    for offset in range(max_tries):
        port = start_port + offset
        try:
            with socket.create_server((host, port), reuse_port=False):
                return port, offset != 0
        except OSError as exc:
            last_error = exc
            continue

    msg = f"No available port found starting at {start_port} after {max_tries} attempts"
    if last_error is not None:
        msg = f"{msg} (last error: {last_error})"
    raise RuntimeError(msg)


def scenario_path(name: str) -> Path:
    path = Path(name)
    if path.exists():
        return path
    bundled = SCENARIO_DIR / f"{path.stem}.json"
    if bundled.exists():
        return bundled
    return path


def _resolve(args: argparse.Namespace) -> int:
    try:
        setup: BattleSetup = load_scenario(scenario_path(args.scenario))
    except (ScenarioError, RulesError) as exc:
        print(f"[tactics-sim] {exc}", file=sys.stderr)
        return 2

    seed = args.seed if args.seed is not None else setup.seed
    resolver = resolver_for(setup.kind)
    result = resolver.resolve(
        setup.attacker,
        setup.defender,
        setup.context,
        attacker_doctrine=setup.attacker_doctrine,
        defender_doctrine=setup.defender_doctrine,
        seed=seed,
    )

    if args.json:
        print(result_response(result).model_dump_json(by_alias=True, indent=2))
        return 0

    for record in result.round_log:
        print(record.narrative)
        if args.verbose:
            print(f"    attacker {record.attacker_power.summary()}")
            print(f"    defender {record.defender_power.summary()}")
    print()
    print(result.narrative)
    print(f"Outcome: {result.outcome.value}")
    return 0


def _serve(args: argparse.Namespace) -> int:
    try:
        chosen_port, did_fallback = find_available_port(args.host, args.port, max_tries=50)
    except (RuntimeError, ValueError) as exc:
        print(f"[tactics-sim] Failed to select a free port: {exc}", file=sys.stderr)
        return 2

    url = f"http://{args.host}:{chosen_port}"
    if did_fallback:
        print(f"[tactics-sim] Serving on {url} (selected because {args.port} was in use).")
    else:
        print(f"[tactics-sim] Serving on {url}.")

    try:
        uvicorn.run(
            "tactics_sim.server.main:app",
            host=args.host,
            port=chosen_port,
            reload=args.reload,
        )
    except KeyboardInterrupt:
        return 0
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tactics-sim",
        description="Resolve tactical battles from scenario files or serve the battle API.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and power breakdowns.")
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve a scenario to completion.")
    resolve.add_argument("scenario", help="Scenario JSON path or bundled scenario name.")
    resolve.add_argument("--seed", type=int, default=None, help="Override the scenario seed.")
    resolve.add_argument("--json", action="store_true", help="Print the result as JSON.")
    resolve.set_defaults(handler=_resolve)

    serve = commands.add_parser("serve", help="Run the battle API server.")
    serve.add_argument("--host", default="127.0.0.1", help="Host to listen on (default: %(default)s).")
    serve.add_argument("--port", type=int, default=8000, help="Starting port (default: %(default)s).")
    serve.add_argument("--reload", action="store_true", help="Enable uvicorn --reload.")
    serve.set_defaults(handler=_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
