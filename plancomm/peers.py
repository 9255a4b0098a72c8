"""PeerTracker — the receiving side's view of which collaborators are alive."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger("PlanComm.Peers")


@dataclass
class PeerRecord:
    """Last time a trajectory broadcast was received from a peer."""

    robot_id: str
    last_seen: float  # monotonic seconds
    messages: int = 0

    def age(self, now: float) -> float:
        return now - self.last_seen

    def to_dict(self) -> dict:
        return {
            "robot_id": self.robot_id,
            "last_seen": self.last_seen,
            "messages": self.messages,
        }

    @classmethod
    def from_dict(cls, d: dict) -> PeerRecord:
        return cls(
            robot_id=d["robot_id"],
            last_seen=float(d["last_seen"]),
            messages=int(d.get("messages", 0)),
        )


class PeerTracker:
    """Tracks peer broadcasts and flags peers that went silent.

    A peer is stale once more than ``timeout_s`` seconds pass without a
    broadcast from it. A peer that was never heard from is stale too.
    """

    def __init__(self, timeout_s: float) -> None:
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}")
        self.timeout_s = float(timeout_s)
        self._peers: dict[str, PeerRecord] = {}
        self._stale: set[str] = set()
        self._lock = threading.Lock()

    def observe(self, robot_id: str, now: float) -> PeerRecord:
        """Record a broadcast from *robot_id* received at *now*."""
        with self._lock:
            rec = self._peers.get(robot_id)
            if rec is None:
                rec = PeerRecord(robot_id=robot_id, last_seen=now)
                self._peers[robot_id] = rec
                logger.info(f"Peer joined: {robot_id}")
            rec.last_seen = max(rec.last_seen, now)
            rec.messages += 1
            if robot_id in self._stale:
                self._stale.discard(robot_id)
                logger.info(f"Peer {robot_id} is broadcasting again")
        return rec

    def is_stale(self, robot_id: str, now: float) -> bool:
        with self._lock:
            rec = self._peers.get(robot_id)
            if rec is None:
                return True
            stale = rec.age(now) > self.timeout_s
            if stale and robot_id not in self._stale:
                self._stale.add(robot_id)
                logger.warning(
                    f"Peer {robot_id} silent for {rec.age(now):.1f}s "
                    f"(timeout: {self.timeout_s}s) -- treating as disconnected"
                )
            return stale

    def stale_peers(self, now: float) -> list[str]:
        return [rid for rid in self.known_peers() if self.is_stale(rid, now)]

    def live_peers(self, now: float) -> list[str]:
        return [rid for rid in self.known_peers() if not self.is_stale(rid, now)]

    def known_peers(self) -> list[str]:
        with self._lock:
            return list(self._peers)

    def get(self, robot_id: str) -> PeerRecord | None:
        with self._lock:
            return self._peers.get(robot_id)

    def forget(self, robot_id: str) -> None:
        with self._lock:
            self._peers.pop(robot_id, None)
            self._stale.discard(robot_id)
