"""
Planner lifecycle states and the communication gate.

The outer planner owns its state machine; this module only needs its coarse
lifecycle value to decide whether broadcasting is allowed at all. The gate
runs before any trigger and can suppress communication unconditionally.

Every :class:`PlannerState` member must have an explicit entry in
``_GATE_TABLE``. The table is checked when this module is imported, so a new
lifecycle state without a gating rule fails at import instead of falling
through to a default.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Mapping

logger = logging.getLogger("PlanComm.Lifecycle")


class GateDefinitionError(RuntimeError):
    """Raised when the gating table does not classify every lifecycle state."""


class PlannerState(Enum):
    """Coarse lifecycle of the local planner."""

    UNINITIALIZED = "uninitialized"
    STARTUP = "startup"
    WAITING_FOR_FIRST_POSE = "waiting_for_first_pose"
    INITIALIZING_OBSTACLES = "initializing_obstacles"
    RUNNING = "running"
    REPLANNING = "replanning"
    GOAL_REACHED = "goal_reached"
    RESETTING = "resetting"
    ERROR = "error"

    @classmethod
    def parse(cls, value) -> "PlannerState":
        """Return the member for *value* (member, name or value string).

        Names are matched case-insensitively and ``-`` is accepted in place
        of ``_``, so scenario files can say ``running`` or ``goal-reached``.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown planner state: {value!r}")
        key = value.strip().replace("-", "_").lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown planner state: {value!r}")


class CommPermission(Enum):
    """Outcome of the lifecycle gate."""

    PERMITTED = "permitted"
    FORBIDDEN = "forbidden"


_GATE_TABLE: Dict[PlannerState, CommPermission] = {
    PlannerState.UNINITIALIZED: CommPermission.FORBIDDEN,
    PlannerState.STARTUP: CommPermission.FORBIDDEN,
    PlannerState.WAITING_FOR_FIRST_POSE: CommPermission.FORBIDDEN,
    PlannerState.INITIALIZING_OBSTACLES: CommPermission.FORBIDDEN,
    PlannerState.RUNNING: CommPermission.PERMITTED,
    PlannerState.REPLANNING: CommPermission.PERMITTED,
    PlannerState.GOAL_REACHED: CommPermission.FORBIDDEN,
    PlannerState.RESETTING: CommPermission.FORBIDDEN,
    PlannerState.ERROR: CommPermission.FORBIDDEN,
}


def check_gate_table(
    table: Mapping[PlannerState, CommPermission],
    states: Iterable[PlannerState] = PlannerState,
) -> None:
    """Raise :class:`GateDefinitionError` unless *table* classifies every state."""
    missing = [s.name for s in states if s not in table]
    if missing:
        raise GateDefinitionError(
            f"No communication gating rule for planner state(s): {', '.join(missing)}"
        )
    invalid = [s.name for s, p in table.items() if not isinstance(p, CommPermission)]
    if invalid:
        raise GateDefinitionError(
            f"Gating rule must be a CommPermission for state(s): {', '.join(invalid)}"
        )


check_gate_table(_GATE_TABLE)


def classify(state: PlannerState) -> CommPermission:
    """Return the gate outcome for *state*."""
    return _GATE_TABLE[state]


def permits(state: PlannerState) -> bool:
    """True if the planner may communicate while in *state*."""
    return _GATE_TABLE[state] is CommPermission.PERMITTED


def permitted_states() -> list[PlannerState]:
    return [s for s in PlannerState if permits(s)]
