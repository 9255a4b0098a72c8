"""
PlanningCycle -- wires one robot's planning tick to the decision engine.

Each :meth:`PlanningCycle.step` samples the clock once, asks the engine,
calls the transport when the answer is yes, and records the decision sample.
The engine itself never touches the transport.

Usage::

    cycle = PlanningCycle(engine, publish_fn=transport.publish, robot_id="jackal-1")

    # In the planning loop:
    decision = cycle.step(planner.state, outcome)
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from plancomm.clock import MonotonicClock
from plancomm.engine import Decision, DecisionEngine
from plancomm.lifecycle import PlannerState
from plancomm.outcome import PlanningOutcome
from plancomm.recorder import DecisionRecorder

logger = logging.getLogger("PlanComm.Cycle")

PublishFn = Callable[[str, PlanningOutcome], Any]


class PlanningCycle:
    """Runs the communication decision for each planning cycle of one robot."""

    def __init__(
        self,
        engine: DecisionEngine,
        publish_fn: Optional[PublishFn] = None,
        clock: Optional[MonotonicClock] = None,
        recorder: Optional[DecisionRecorder] = None,
        robot_id: str = "robot",
        swallow_transport_errors: bool = False,
    ):
        """Initialize the cycle driver.

        Args:
            engine: The robot's :class:`DecisionEngine`.
            publish_fn: Called as ``publish_fn(robot_id, outcome)`` on every
                cycle that decides to broadcast.
            clock: Time source (default: :class:`MonotonicClock`).
            recorder: Receives one sample per cycle (default: a fresh
                in-memory :class:`DecisionRecorder`).
            robot_id: Name passed to ``publish_fn``.
            swallow_transport_errors: Log transport exceptions instead of
                raising them into the planning loop.
        """
        self.engine = engine
        self.robot_id = robot_id
        self.clock = clock or MonotonicClock()
        self.recorder = recorder if recorder is not None else DecisionRecorder()
        self._publish_fn = publish_fn
        self._swallow = swallow_transport_errors

        self._lock = threading.Lock()
        self._cycle = 0
        self._broadcasts = 0
        self._transport_failures = 0

    @property
    def cycle(self) -> int:
        with self._lock:
            return self._cycle

    def step(self, state: PlannerState, outcome: PlanningOutcome) -> Decision:
        """Decide for one planning cycle and act on the decision."""
        now = self.clock.now()
        decision = self.engine.evaluate(state, outcome, now)

        with self._lock:
            cycle = self._cycle
            self._cycle += 1
            if decision.communicate:
                self._broadcasts += 1

        self.recorder.record(cycle, decision)

        if decision.communicate and self._publish_fn is not None:
            try:
                self._publish_fn(self.robot_id, outcome)
            except Exception as exc:
                with self._lock:
                    self._transport_failures += 1
                if not self._swallow:
                    raise
                logger.error(f"Broadcast failed on cycle {cycle}: {exc}")

        return decision

    def get_status(self) -> Dict[str, Any]:
        """Return cycle and engine status for telemetry."""
        status = self.engine.get_status(self.clock.now())
        with self._lock:
            status.update(
                {
                    "robot_id": self.robot_id,
                    "cycles": self._cycle,
                    "broadcasts": self._broadcasts,
                    "transport_failures": self._transport_failures,
                }
            )
        status["communication_rate"] = round(self.recorder.communication_rate(), 4)
        return status
