"""
plancomm CLI entry point.

Usage:
    plancomm validate --config robot.plancomm.yaml
    plancomm simulate --config robot.plancomm.yaml --scenario run.yaml
    plancomm simulate --config robot.plancomm.yaml --scenario run.yaml --log decisions.jsonl

Scenario format::

    robot_id: jackal-1
    cycles:
      - {t: 0.0, state: running, success: true, new_topology: false, topology_id: 3}
      - {t: 0.5, state: running, topology_id: 3}
      - {t: 2.0, state: goal_reached}
"""

import argparse
import logging
import os
import sys
import traceback

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plancomm.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    config_from_dict,
    load_yaml,
    telemetry_from_dict,
    validate_comm_config,
)

logger = logging.getLogger("PlanComm.CLI")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def cmd_validate(args) -> int:
    """Validate the communication section of a config file."""
    console = Console()
    raw = load_yaml(args.config)
    ok, errors = validate_comm_config(raw)
    if not ok:
        console.print(f"\n  [bold red]Invalid config[/] {args.config}")
        for msg in errors:
            console.print(f"    [red]-[/] {escape(msg)}")
        console.print()
        return 1

    config = config_from_dict(raw)
    table = Table(title=f"Communication config: {args.config}", show_header=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        table.add_row(key, str(value))
    for key, value in telemetry_from_dict(raw).to_dict().items():
        table.add_row(f"telemetry.{key}", str(value))
    console.print(table)
    return 0


def _load_scenario(path: str) -> dict:
    scenario = load_yaml(path)
    cycles = scenario.get("cycles")
    if not isinstance(cycles, list) or not cycles:
        raise ConfigError(f"Scenario {path} must contain a non-empty 'cycles' list")
    return scenario


def cmd_simulate(args) -> int:
    """Replay a scenario through a PlanningCycle and print every decision."""
    from plancomm.clock import ManualClock
    from plancomm.cycle import PlanningCycle
    from plancomm.engine import DecisionEngine
    from plancomm.lifecycle import PlannerState
    from plancomm.outcome import PlanningOutcome
    from plancomm.peers import PeerTracker
    from plancomm.recorder import DecisionRecorder

    console = Console()
    raw = load_yaml(args.config)
    config = config_from_dict(raw)
    telemetry = telemetry_from_dict(raw)
    scenario = _load_scenario(args.scenario)
    robot_id = str(scenario.get("robot_id", "robot"))

    clock = ManualClock(start=float(scenario["cycles"][0].get("t", 0.0)))
    recorder = DecisionRecorder()
    if args.log:
        recorder.enable_persistence(args.log)
    elif telemetry.enabled:
        recorder.enable_persistence(telemetry.log_path)
    persisted = bool(args.log) or telemetry.enabled

    # A peer's view of this robot, fed by the simulated transport.
    peer_view = PeerTracker(config.peer_timeout_s)
    cycle = PlanningCycle(
        DecisionEngine(config),
        publish_fn=lambda rid, _outcome: peer_view.observe(rid, clock.now()),
        clock=clock,
        recorder=recorder,
        robot_id=robot_id,
    )

    table = Table(title=f"Simulation: {robot_id}", show_header=True)
    table.add_column("Cycle", justify="right")
    table.add_column("t [s]", justify="right")
    table.add_column("State")
    table.add_column("Topology", justify="right")
    table.add_column("Triggers")
    table.add_column("Broadcast")
    table.add_column("Peer view")

    for i, entry in enumerate(scenario["cycles"]):
        if "t" in entry:
            clock.set(float(entry["t"]))
        state = PlannerState.parse(entry.get("state", "running"))
        outcome = PlanningOutcome.from_dict(entry)
        decision = cycle.step(state, outcome)

        triggers = []
        if decision.topology_trigger:
            triggers.append("topology")
        if decision.heartbeat_trigger:
            triggers.append("heartbeat")
        if not decision.permitted:
            triggers.append("[dim]gated[/]")

        stale = peer_view.is_stale(robot_id, clock.now())
        table.add_row(
            str(i),
            f"{clock.now():.2f}",
            state.value,
            str(outcome.selected_topology_id),
            ", ".join(triggers) or "-",
            "[green]yes[/]" if decision.communicate else "[dim]no[/]",
            "[red]stale[/]" if stale else "[green]live[/]",
        )

    console.print(table)
    status = cycle.get_status()
    console.print(
        f"  {status['broadcasts']}/{status['cycles']} cycles broadcast "
        f"(rate {status['communication_rate']:.2f})"
    )
    if persisted:
        console.print(f"  Decision samples written to {recorder.log_path}")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plancomm",
        description="plancomm - communication decisions for cooperative multi-robot planners",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command")

    p_validate = sub.add_parser("validate", help="Validate a communication config file")
    p_validate.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Config YAML file")
    p_validate.set_defaults(func=cmd_validate)

    p_sim = sub.add_parser(
        "simulate",
        help="Replay a planning scenario and show every communication decision",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_sim.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Config YAML file")
    p_sim.add_argument("--scenario", required=True, help="Scenario YAML file")
    p_sim.add_argument("--log", default=None, help="Append decision samples to this JSONL file")
    p_sim.set_defaults(func=cmd_simulate)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


def entrypoint() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n  Interrupted.")
        sys.exit(130)
    except ConfigError as exc:
        print(f"\n  Configuration error: {exc}")
        print("  Hint: run `plancomm validate --config <file>` for a full report.\n")
        sys.exit(1)
    except ValueError as exc:
        print(f"\n  Invalid input: {exc}\n")
        sys.exit(1)
    except Exception as exc:
        print(f"\n  Unexpected error: {exc}")
        print("  Set LOG_LEVEL=DEBUG and try again for details.\n")
        if os.getenv("LOG_LEVEL", "").upper() == "DEBUG":
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    entrypoint()
