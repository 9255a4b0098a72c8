"""Tests for plancomm.cli -- validate and simulate commands."""

import json

import pytest
import yaml

from plancomm.cli import build_parser, entrypoint, main
from plancomm.config import ConfigError

_CONFIG = {
    "communication": {
        "topology_switch_only": True,
        "heartbeat_interval_s": 2.0,
        "n_paths": 4,
        "peer_timeout_s": 6.0,
    }
}

_SCENARIO = {
    "robot_id": "jackal-1",
    "cycles": [
        {"t": 0.0, "state": "startup"},
        {"t": 1.0, "state": "running", "topology_id": 3},
        {"t": 1.5, "state": "running", "topology_id": 3},
        {"t": 3.0, "state": "running", "topology_id": 3},
        {"t": 3.1, "state": "running", "topology_id": 5, "new_topology": True},
        {"t": 4.0, "state": "goal_reached", "topology_id": 5},
    ],
}


@pytest.fixture
def files(tmp_path):
    cfg = tmp_path / "robot.plancomm.yaml"
    cfg.write_text(yaml.safe_dump(_CONFIG))
    scenario = tmp_path / "scenario.yaml"
    scenario.write_text(yaml.safe_dump(_SCENARIO))
    return cfg, scenario


class TestParser:
    def test_simulate_requires_scenario(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["simulate", "--config", "x.yaml"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "plancomm" in capsys.readouterr().out


class TestValidate:
    def test_valid_config(self, files, capsys):
        cfg, _ = files
        assert main(["validate", "--config", str(cfg)]) == 0
        out = capsys.readouterr().out
        assert "non_guided_topology_id" in out

    def test_invalid_config(self, tmp_path, capsys):
        cfg = tmp_path / "bad.yaml"
        cfg.write_text(yaml.safe_dump({"communication": {"n_paths": 2, "heartbeat_interval_s": 0}}))
        assert main(["validate", "--config", str(cfg)]) == 1
        assert "heartbeat_interval_s" in capsys.readouterr().out

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            main(["validate", "--config", str(tmp_path / "missing.yaml")])


class TestSimulate:
    def test_simulate_summary(self, files, capsys):
        cfg, scenario = files
        assert main(["simulate", "--config", str(cfg), "--scenario", str(scenario)]) == 0
        out = capsys.readouterr().out
        # t=1.0 first heartbeat, t=3.0 heartbeat, t=3.1 topology switch
        assert "3/6 cycles broadcast" in out

    def test_simulate_writes_log(self, files, tmp_path):
        cfg, scenario = files
        log = tmp_path / "decisions.jsonl"
        main(["simulate", "--config", str(cfg), "--scenario", str(scenario), "--log", str(log)])
        values = [json.loads(line)["value"] for line in log.read_text().splitlines()]
        assert values == [0.0, 1.0, 0.0, 1.0, 1.0, 0.0]

    def test_empty_scenario_rejected(self, files, tmp_path):
        cfg, _ = files
        scenario = tmp_path / "empty.yaml"
        scenario.write_text(yaml.safe_dump({"cycles": []}))
        with pytest.raises(ConfigError, match="cycles"):
            main(["simulate", "--config", str(cfg), "--scenario", str(scenario)])

    def test_unknown_state_rejected(self, files, tmp_path):
        cfg, _ = files
        scenario = tmp_path / "bad_state.yaml"
        scenario.write_text(yaml.safe_dump({"cycles": [{"t": 0.0, "state": "flying"}]}))
        with pytest.raises(ValueError, match="flying"):
            main(["simulate", "--config", str(cfg), "--scenario", str(scenario)])

    def test_quoted_bool_rejected(self, files, tmp_path):
        cfg, _ = files
        scenario = tmp_path / "quoted.yaml"
        scenario.write_text('cycles:\n  - {t: 0.0, state: running, success: "false"}\n')
        with pytest.raises(ValueError, match="success"):
            main(["simulate", "--config", str(cfg), "--scenario", str(scenario)])

    def test_empty_topology_id_exits_as_invalid_input(self, files, tmp_path, monkeypatch, capsys):
        cfg, _ = files
        scenario = tmp_path / "blank.yaml"
        scenario.write_text("cycles:\n  - t: 0.0\n    state: running\n    topology_id:\n")
        monkeypatch.setattr(
            "sys.argv",
            ["plancomm", "simulate", "--config", str(cfg), "--scenario", str(scenario)],
        )
        with pytest.raises(SystemExit) as exc_info:
            entrypoint()
        assert exc_info.value.code == 1
        assert "Invalid input" in capsys.readouterr().out


class TestEntrypoint:
    def test_config_error_exits_1(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(
            "sys.argv", ["plancomm", "validate", "--config", str(tmp_path / "missing.yaml")]
        )
        with pytest.raises(SystemExit) as exc_info:
            entrypoint()
        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().out

    def test_success_exits_0(self, files, monkeypatch):
        cfg, _ = files
        monkeypatch.setattr("sys.argv", ["plancomm", "validate", "--config", str(cfg)])
        with pytest.raises(SystemExit) as exc_info:
            entrypoint()
        assert exc_info.value.code == 0


class TestTelemetrySection:
    def test_enabled_section_persists_samples(self, tmp_path, capsys):
        log = tmp_path / "telemetry" / "decisions.jsonl"
        cfg = tmp_path / "robot.plancomm.yaml"
        cfg.write_text(
            yaml.safe_dump(dict(_CONFIG, telemetry={"enabled": True, "log_path": str(log)}))
        )
        scenario = tmp_path / "scenario.yaml"
        scenario.write_text(yaml.safe_dump(_SCENARIO))

        assert main(["simulate", "--config", str(cfg), "--scenario", str(scenario)]) == 0
        values = [json.loads(line)["value"] for line in log.read_text().splitlines()]
        assert values == [0.0, 1.0, 0.0, 1.0, 1.0, 0.0]
        assert "Decision samples written to" in capsys.readouterr().out

    def test_disabled_section_writes_nothing(self, tmp_path):
        log = tmp_path / "decisions.jsonl"
        cfg = tmp_path / "robot.plancomm.yaml"
        cfg.write_text(
            yaml.safe_dump(dict(_CONFIG, telemetry={"enabled": False, "log_path": str(log)}))
        )
        scenario = tmp_path / "scenario.yaml"
        scenario.write_text(yaml.safe_dump(_SCENARIO))

        main(["simulate", "--config", str(cfg), "--scenario", str(scenario)])
        assert not log.exists()

    def test_validate_shows_telemetry(self, tmp_path, capsys):
        cfg = tmp_path / "robot.plancomm.yaml"
        cfg.write_text(yaml.safe_dump(dict(_CONFIG, telemetry={"enabled": True})))
        assert main(["validate", "--config", str(cfg)]) == 0
        assert "telemetry.enabled" in capsys.readouterr().out
