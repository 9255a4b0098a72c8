"""plancomm: per-cycle communication decisions for cooperative multi-robot planners.

Decides, once per planning cycle, whether the local robot broadcasts its
latest trajectory and topology to its peers.

Key classes:

- :class:`DecisionEngine` — fuses the lifecycle gate, the topology-switch
  trigger and the heartbeat trigger into one boolean per cycle.
- :class:`CommunicationConfig` — immutable, validated configuration loaded
  once at startup (see :func:`load_config`).
- :class:`PlannerState` — the planner's coarse lifecycle, gated by
  :func:`permits`.
- :class:`PlanningCycle` — drives one robot's cycle: clock, engine, transport
  callable and decision recorder.
"""

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("plancomm")
except Exception:
    __version__ = "0.1.0"  # fallback

from plancomm.config import (
    DEFAULT_HEARTBEAT_INTERVAL_S,
    CommunicationConfig,
    ConfigError,
    TelemetryConfig,
    load_config,
)
from plancomm.cycle import PlanningCycle
from plancomm.engine import CommunicationState, Decision, DecisionEngine, decide
from plancomm.lifecycle import CommPermission, PlannerState, permits
from plancomm.outcome import PlanningOutcome

__all__ = [
    "__version__",
    "DEFAULT_HEARTBEAT_INTERVAL_S",
    "CommPermission",
    "CommunicationConfig",
    "CommunicationState",
    "ConfigError",
    "Decision",
    "DecisionEngine",
    "PlannerState",
    "PlanningCycle",
    "PlanningOutcome",
    "TelemetryConfig",
    "decide",
    "load_config",
    "permits",
]
