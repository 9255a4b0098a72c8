"""Communication config loading and validation.

The configuration is read once at startup, validated, and frozen. The engine
never re-reads or re-validates it, so every problem has to surface here.

YAML format::

    communication:
      topology_switch_only: true
      heartbeat_interval_s: 2.0    # DEFAULT_HEARTBEAT_INTERVAL_S when omitted
      n_paths: 4                   # non_guided_topology_id = 2 * n_paths
      # non_guided_topology_id: 8  # or give the sentinel directly
      peer_timeout_s: 6.0
    telemetry:                     # optional
      enabled: true
      log_path: ~/.plancomm/decisions.jsonl

Usage::

    from plancomm.config import load_config, load_yaml, telemetry_from_dict

    config = load_config("robot.plancomm.yaml")   # raises ConfigError
    telemetry = telemetry_from_dict(load_yaml("robot.plancomm.yaml"))
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger("PlanComm.Config")

#: Heartbeat interval used when the config does not set one: 2.0 seconds.
DEFAULT_HEARTBEAT_INTERVAL_S: float = 2.0

#: How long a receiver waits before treating a silent peer as disconnected.
DEFAULT_PEER_TIMEOUT_S: float = 6.0

DEFAULT_TOPOLOGY_SWITCH_ONLY: bool = True

DEFAULT_CONFIG_PATH = os.getenv("PLANCOMM_CONFIG", "robot.plancomm.yaml")

SECTION = "communication"
TELEMETRY_SECTION = "telemetry"


class ConfigError(ValueError):
    """Invalid or missing communication configuration."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class CommunicationConfig:
    """Immutable communication settings for one robot."""

    non_guided_topology_id: int
    topology_switch_only: bool = DEFAULT_TOPOLOGY_SWITCH_ONLY
    heartbeat_interval_s: float = DEFAULT_HEARTBEAT_INTERVAL_S
    peer_timeout_s: float = DEFAULT_PEER_TIMEOUT_S

    def __post_init__(self) -> None:
        errors = _field_errors(
            topology_switch_only=self.topology_switch_only,
            heartbeat_interval_s=self.heartbeat_interval_s,
            non_guided_topology_id=self.non_guided_topology_id,
            peer_timeout_s=self.peer_timeout_s,
        )
        if errors:
            raise ConfigError("; ".join(errors), errors)
        object.__setattr__(self, "heartbeat_interval_s", float(self.heartbeat_interval_s))
        object.__setattr__(self, "peer_timeout_s", float(self.peer_timeout_s))
        if self.peer_timeout_s <= self.heartbeat_interval_s:
            logger.warning(
                f"peer_timeout_s ({self.peer_timeout_s}s) does not exceed "
                f"heartbeat_interval_s ({self.heartbeat_interval_s}s); peers may "
                "see this robot as stale between heartbeats"
            )

    @classmethod
    def from_paths(cls, n_paths: int, **kwargs) -> CommunicationConfig:
        """Build a config whose non-guided sentinel is ``2 * n_paths``."""
        if not _is_int(n_paths) or n_paths < 0:
            raise ConfigError(f"'n_paths' must be a non-negative integer, got {n_paths!r}")
        return cls(non_guided_topology_id=2 * n_paths, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topology_switch_only": self.topology_switch_only,
            "heartbeat_interval_s": self.heartbeat_interval_s,
            "non_guided_topology_id": self.non_guided_topology_id,
            "peer_timeout_s": self.peer_timeout_s,
        }


@dataclass(frozen=True)
class TelemetryConfig:
    """Where per-cycle decision samples are persisted."""

    enabled: bool = False
    log_path: Optional[str] = None  # None: the recorder's default path

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "log_path": self.log_path}


def _telemetry_errors(config: dict) -> List[str]:
    section = config.get(TELEMETRY_SECTION)
    if section is None:
        return []
    if not isinstance(section, dict):
        return [f"'{TELEMETRY_SECTION}' must be a mapping (dict), not a scalar"]
    errors: List[str] = []
    enabled = section.get("enabled", False)
    if not isinstance(enabled, bool):
        errors.append(f"'{TELEMETRY_SECTION}.enabled' must be true or false, got {enabled!r}")
    log_path = section.get("log_path")
    if log_path is not None and (not isinstance(log_path, str) or not log_path.strip()):
        errors.append(f"'{TELEMETRY_SECTION}.log_path' must be a non-empty path, got {log_path!r}")
    return errors


def telemetry_from_dict(config: dict) -> TelemetryConfig:
    """Build a :class:`TelemetryConfig` from a loaded config dict.

    The ``telemetry`` section is optional; without it persistence is off.

    Raises:
        ConfigError: if the section is present but invalid.
    """
    errors = _telemetry_errors(config)
    if errors:
        raise ConfigError("Invalid telemetry config: " + "; ".join(errors), errors)
    section = config.get(TELEMETRY_SECTION) or {}
    log_path = section.get("log_path")
    return TelemetryConfig(
        enabled=section.get("enabled", False),
        log_path=os.path.expanduser(log_path) if log_path else None,
    )


def _field_errors(
    topology_switch_only: Any,
    heartbeat_interval_s: Any,
    non_guided_topology_id: Any,
    peer_timeout_s: Any,
) -> List[str]:
    errors: List[str] = []
    if not isinstance(topology_switch_only, bool):
        errors.append(
            f"'{SECTION}.topology_switch_only' must be true or false, "
            f"got {topology_switch_only!r}"
        )
    if not _is_number(heartbeat_interval_s) or not math.isfinite(heartbeat_interval_s):
        errors.append(
            f"'{SECTION}.heartbeat_interval_s' must be a number of seconds, "
            f"got {heartbeat_interval_s!r}"
        )
    elif heartbeat_interval_s <= 0:
        errors.append(
            f"'{SECTION}.heartbeat_interval_s' must be positive, got {heartbeat_interval_s}"
        )
    if not _is_int(non_guided_topology_id):
        errors.append(
            f"'{SECTION}.non_guided_topology_id' must be an integer, "
            f"got {non_guided_topology_id!r}"
        )
    elif non_guided_topology_id < 0:
        errors.append(
            f"'{SECTION}.non_guided_topology_id' must not be negative, "
            f"got {non_guided_topology_id}"
        )
    if not _is_number(peer_timeout_s) or not math.isfinite(peer_timeout_s):
        errors.append(
            f"'{SECTION}.peer_timeout_s' must be a number of seconds, got {peer_timeout_s!r}"
        )
    elif peer_timeout_s <= 0:
        errors.append(f"'{SECTION}.peer_timeout_s' must be positive, got {peer_timeout_s}")
    return errors


def _resolve_non_guided_id(section: dict, errors: List[str], warn: bool = False) -> Any:
    explicit = section.get("non_guided_topology_id")
    n_paths = section.get("n_paths")

    bad_n_paths = False
    if n_paths is not None and (not _is_int(n_paths) or n_paths < 0):
        errors.append(f"'{SECTION}.n_paths' must be a non-negative integer, got {n_paths!r}")
        n_paths = None
        bad_n_paths = True

    if explicit is None and n_paths is None:
        if not bad_n_paths:
            errors.append(
                f"Missing required key: '{SECTION}.n_paths' "
                f"(or '{SECTION}.non_guided_topology_id')"
            )
        return None
    if explicit is None:
        return 2 * n_paths
    if warn and n_paths is not None and _is_int(explicit) and explicit != 2 * n_paths:
        logger.warning(
            f"non_guided_topology_id={explicit} overrides the value derived from "
            f"n_paths={n_paths} ({2 * n_paths})"
        )
    return explicit


def validate_comm_config(config: dict) -> Tuple[bool, List[str]]:
    """Validate the ``communication`` section of a loaded config dict.

    The optional ``telemetry`` section is checked too when present.

    Returns:
        A ``(is_valid, errors)`` tuple. ``is_valid`` is ``True`` only when
        ``errors`` is empty. Every problem found is reported, not just the
        first one.
    """
    if not isinstance(config, dict):
        return False, ["Config must be a dict (check YAML syntax)"]

    section = config.get(SECTION)
    if section is None:
        return False, [f"Missing required top-level key: '{SECTION}'"]
    if not isinstance(section, dict):
        return False, [f"'{SECTION}' must be a mapping (dict), not a scalar"]

    errors: List[str] = []
    non_guided_id = _resolve_non_guided_id(section, errors)
    field_errors = _field_errors(
        topology_switch_only=section.get("topology_switch_only", DEFAULT_TOPOLOGY_SWITCH_ONLY),
        heartbeat_interval_s=section.get("heartbeat_interval_s", DEFAULT_HEARTBEAT_INTERVAL_S),
        non_guided_topology_id=non_guided_id if non_guided_id is not None else 0,
        peer_timeout_s=section.get("peer_timeout_s", DEFAULT_PEER_TIMEOUT_S),
    )
    errors.extend(field_errors)
    errors.extend(_telemetry_errors(config))
    return len(errors) == 0, errors


def log_validation_result(config: dict, label: str = "Communication config") -> bool:
    """Validate *config* and log each error. Returns True if valid."""
    ok, errors = validate_comm_config(config)
    if ok:
        logger.debug("%s validation passed", label)
    else:
        for msg in errors:
            logger.error("%s validation error: %s", label, msg)
    return ok


def config_from_dict(config: dict) -> CommunicationConfig:
    """Build a :class:`CommunicationConfig` from a loaded config dict.

    Raises:
        ConfigError: listing every validation problem.
    """
    ok, errors = validate_comm_config(config)
    if not ok:
        raise ConfigError("Invalid communication config: " + "; ".join(errors), errors)

    section = config[SECTION]
    errors = []
    return CommunicationConfig(
        topology_switch_only=section.get("topology_switch_only", DEFAULT_TOPOLOGY_SWITCH_ONLY),
        heartbeat_interval_s=section.get("heartbeat_interval_s", DEFAULT_HEARTBEAT_INTERVAL_S),
        non_guided_topology_id=_resolve_non_guided_id(section, errors, warn=True),
        peer_timeout_s=section.get("peer_timeout_s", DEFAULT_PEER_TIMEOUT_S),
    )


def load_yaml(path: str) -> dict:
    """Read a YAML config file into a dict."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping at the top level: {path}")
    return data


def load_config(path: Optional[str] = None) -> CommunicationConfig:
    """Load, validate and freeze the communication config at *path*."""
    path = path or DEFAULT_CONFIG_PATH
    config = config_from_dict(load_yaml(path))
    logger.info(
        f"Loaded communication config from {path}: "
        f"topology_switch_only={config.topology_switch_only}, "
        f"heartbeat={config.heartbeat_interval_s}s, "
        f"non_guided_id={config.non_guided_topology_id}"
    )
    return config
