"""
Communication decision engine: should this robot broadcast this cycle?

The engine is asked once per planning cycle. It applies the lifecycle gate
first, then combines the topology-switch and heartbeat triggers:

- ``topology_switch_only: false``: communicate every permitted cycle
  (legacy mode; the triggers are not evaluated).
- ``topology_switch_only: true``: communicate when the topology changed
  *or* the heartbeat is due. Both triggers are computed before they are
  combined, so switch-only mode can never starve the heartbeat.

The last-broadcast timestamp is written by the engine itself, and only on a
true decision. The engine does no I/O; publishing is the caller's job.

Usage::

    engine = DecisionEngine(config)
    if engine.decide(PlannerState.RUNNING, outcome, clock.now()):
        transport.publish(trajectory)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from plancomm.config import CommunicationConfig
from plancomm.lifecycle import PlannerState, permits
from plancomm.outcome import PlanningOutcome
from plancomm.triggers import heartbeat_due, topology_switch_detected

logger = logging.getLogger("PlanComm.Engine")


@dataclass
class CommunicationState:
    """Mutable bookkeeping owned by one engine."""

    last_broadcast_time: Optional[float] = None


@dataclass(frozen=True)
class Decision:
    """The outcome of one cycle, with the sub-results that produced it."""

    communicate: bool
    permitted: bool
    topology_trigger: bool
    heartbeat_trigger: bool
    timestamp: float

    def as_sample(self) -> float:
        """The decision as a numeric telemetry sample (1.0 / 0.0)."""
        return 1.0 if self.communicate else 0.0

    def __bool__(self) -> bool:
        return self.communicate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "communicate": self.communicate,
            "permitted": self.permitted,
            "topology_trigger": self.topology_trigger,
            "heartbeat_trigger": self.heartbeat_trigger,
            "timestamp": self.timestamp,
        }


def evaluate(
    state: PlannerState,
    outcome: PlanningOutcome,
    now: float,
    config: CommunicationConfig,
    comm_state: CommunicationState,
) -> Decision:
    """Decide for one cycle and update *comm_state* on a true decision."""
    if not permits(state):
        return Decision(
            communicate=False,
            permitted=False,
            topology_trigger=False,
            heartbeat_trigger=False,
            timestamp=now,
        )

    if not config.topology_switch_only:
        comm_state.last_broadcast_time = now
        return Decision(
            communicate=True,
            permitted=True,
            topology_trigger=False,
            heartbeat_trigger=False,
            timestamp=now,
        )

    topology_trigger = topology_switch_detected(outcome, config.non_guided_topology_id)
    heartbeat_trigger = heartbeat_due(
        now, comm_state.last_broadcast_time, config.heartbeat_interval_s
    )
    result = topology_trigger or heartbeat_trigger

    if result:
        comm_state.last_broadcast_time = now
    return Decision(
        communicate=result,
        permitted=True,
        topology_trigger=topology_trigger,
        heartbeat_trigger=heartbeat_trigger,
        timestamp=now,
    )


def decide(
    state: PlannerState,
    outcome: PlanningOutcome,
    now: float,
    config: CommunicationConfig,
    comm_state: CommunicationState,
) -> bool:
    """Return True if the robot should broadcast this cycle.

    Stateless form of :meth:`DecisionEngine.decide`; the caller owns
    *comm_state* and must serialize calls that share it.
    """
    return evaluate(state, outcome, now, config, comm_state).communicate


class DecisionEngine:
    """Per-robot communication decision engine.

    Holds the validated config and the engine-owned
    :class:`CommunicationState`. Calls are serialized by an internal lock so
    the read-check-write of the last-broadcast timestamp is atomic.
    """

    def __init__(self, config: CommunicationConfig, state: Optional[CommunicationState] = None):
        self.config = config
        self._state = state if state is not None else CommunicationState()
        self._lock = threading.Lock()
        self._last_permitted: Optional[bool] = None

        mode = "topology-switch + heartbeat" if config.topology_switch_only else "always"
        logger.info(
            f"Communication engine ready: mode={mode}, "
            f"heartbeat={config.heartbeat_interval_s}s, "
            f"non_guided_id={config.non_guided_topology_id}"
        )

    @property
    def last_broadcast_time(self) -> Optional[float]:
        with self._lock:
            return self._state.last_broadcast_time

    def evaluate(self, state: PlannerState, outcome: PlanningOutcome, now: float) -> Decision:
        """Like :meth:`decide` but returns the full :class:`Decision`."""
        with self._lock:
            decision = evaluate(state, outcome, now, self.config, self._state)
            changed = self._last_permitted is not None and self._last_permitted != decision.permitted
            self._last_permitted = decision.permitted

        if changed:
            logger.info(
                f"Communication {'permitted' if decision.permitted else 'forbidden'} "
                f"(planner state: {state.name})"
            )
        logger.debug(
            "cycle t=%.3f state=%s communicate=%s topology=%s heartbeat=%s",
            now,
            state.name,
            decision.communicate,
            decision.topology_trigger,
            decision.heartbeat_trigger,
        )
        return decision

    def decide(self, state: PlannerState, outcome: PlanningOutcome, now: float) -> bool:
        """Return True if the robot should broadcast this cycle."""
        return self.evaluate(state, outcome, now).communicate

    def get_status(self, now: float) -> Dict[str, Any]:
        """Return engine status for telemetry."""
        with self._lock:
            last = self._state.last_broadcast_time
        return {
            "topology_switch_only": self.config.topology_switch_only,
            "heartbeat_interval_s": self.config.heartbeat_interval_s,
            "non_guided_topology_id": self.config.non_guided_topology_id,
            "last_broadcast_time": last,
            "last_broadcast_s_ago": None if last is None else round(now - last, 3),
        }
