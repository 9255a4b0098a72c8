"""Tests for plancomm.peers -- receiver-side peer liveness."""

import pytest

from plancomm.peers import PeerRecord, PeerTracker


class TestPeerTracker:
    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            PeerTracker(0.0)

    def test_unknown_peer_is_stale(self):
        assert PeerTracker(6.0).is_stale("ghost", now=0.0) is True

    def test_fresh_peer_live(self):
        tracker = PeerTracker(6.0)
        tracker.observe("r1", now=10.0)
        assert tracker.is_stale("r1", now=15.0) is False

    def test_exactly_at_timeout_is_live(self):
        tracker = PeerTracker(6.0)
        tracker.observe("r1", now=10.0)
        assert tracker.is_stale("r1", now=16.0) is False

    def test_silent_peer_stale(self):
        tracker = PeerTracker(6.0)
        tracker.observe("r1", now=10.0)
        assert tracker.is_stale("r1", now=16.5) is True

    def test_recovers_after_new_broadcast(self):
        tracker = PeerTracker(6.0)
        tracker.observe("r1", now=0.0)
        assert tracker.is_stale("r1", now=10.0) is True
        tracker.observe("r1", now=10.0)
        assert tracker.is_stale("r1", now=10.5) is False

    def test_live_and_stale_lists(self):
        tracker = PeerTracker(2.0)
        tracker.observe("a", now=0.0)
        tracker.observe("b", now=5.0)
        assert tracker.live_peers(now=6.0) == ["b"]
        assert tracker.stale_peers(now=6.0) == ["a"]

    def test_message_count(self):
        tracker = PeerTracker(2.0)
        for t in (0.0, 1.0, 2.0):
            tracker.observe("a", now=t)
        assert tracker.get("a").messages == 3
        assert tracker.get("a").last_seen == 2.0

    def test_forget(self):
        tracker = PeerTracker(2.0)
        tracker.observe("a", now=0.0)
        tracker.forget("a")
        assert tracker.known_peers() == []
        assert tracker.get("a") is None

    def test_stale_logged_once(self, caplog):
        tracker = PeerTracker(1.0)
        tracker.observe("a", now=0.0)
        with caplog.at_level("WARNING", logger="PlanComm.Peers"):
            tracker.is_stale("a", now=5.0)
            tracker.is_stale("a", now=6.0)
        assert caplog.text.count("treating as disconnected") == 1


class TestPeerRecord:
    def test_roundtrip(self):
        rec = PeerRecord(robot_id="r1", last_seen=4.5, messages=7)
        assert PeerRecord.from_dict(rec.to_dict()) == rec

    def test_age(self):
        assert PeerRecord(robot_id="r1", last_seen=4.0).age(6.5) == pytest.approx(2.5)
