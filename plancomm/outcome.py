"""PlanningOutcome — the per-cycle result of trajectory computation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlanningOutcome:
    """What the trajectory optimizer reported for this cycle."""

    success: bool
    following_new_topology: bool = False
    selected_topology_id: int = 0

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "following_new_topology": self.following_new_topology,
            "selected_topology_id": self.selected_topology_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> PlanningOutcome:
        """Build an outcome from a mapping.

        Accepts the short scenario-file keys ``new_topology`` and
        ``topology_id`` as well as the field names.
        """
        success = d.get("success", True)
        new_topology = d.get("following_new_topology", d.get("new_topology", False))
        topology_id = d.get("selected_topology_id", d.get("topology_id", 0))
        for key, value in (("success", success), ("new_topology", new_topology)):
            if not isinstance(value, bool):
                raise ValueError(f"Outcome '{key}' must be true or false, got {value!r}")
        if not isinstance(topology_id, int) or isinstance(topology_id, bool):
            raise ValueError(f"Outcome 'topology_id' must be an integer, got {topology_id!r}")
        return cls(
            success=success,
            following_new_topology=new_topology,
            selected_topology_id=topology_id,
        )
