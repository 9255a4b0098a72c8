"""Communication triggers.

Both triggers are pure functions of their inputs. The engine evaluates them
independently each cycle and combines the results; neither one can veto the
other.
"""

from __future__ import annotations

from typing import Optional

from plancomm.outcome import PlanningOutcome


def heartbeat_due(now: float, last_broadcast: Optional[float], interval: float) -> bool:
    """True if at least *interval* seconds have passed since the last broadcast.

    A robot that has never broadcast is always due: "never sent" must not look
    like "sent a moment ago".
    """
    if last_broadcast is None:
        return True
    return (now - last_broadcast) >= interval


def topology_switch_detected(outcome: PlanningOutcome, non_guided_id: int) -> bool:
    """True if this cycle changed something peers must learn about immediately.

    That is the case when planning failed, when the planner adopted a new
    topology, or when it is not following any guided topology at all.
    """
    failed = not outcome.success
    switched = outcome.following_new_topology
    non_guided = outcome.selected_topology_id == non_guided_id
    return failed or switched or non_guided
