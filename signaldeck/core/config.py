"""
SignalDeck Configuration Loader
===============================

Loads the YAML configuration and exposes typed views over the parts
that connectors need.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_WS_URL = "ws://localhost:8000/ws"
DEFAULT_PRICE_FEED_URL = "wss://stream.binance.com:9443/stream"


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""
    pass


def load_yaml(path: str) -> Dict[str, Any]:
    """Load a YAML file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return data


def find_repo_root(start: Optional[Path] = None) -> Path:
    """Locate the repo root by walking upward for known anchors."""
    start_path = (start or Path.cwd()).resolve()
    for current in [start_path, *start_path.parents]:
        if (current / ".git").exists() or (current / "config" / "config.yaml").exists():
            return current
    return start_path


def _resolve_path(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    repo_root = find_repo_root(Path(__file__).resolve())
    return repo_root / candidate


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load main configuration file and apply environment overrides.

    Args:
        config_path: Path to config.yaml

    Returns:
        Configuration dictionary
    """
    path = _resolve_path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    config = load_yaml(str(path))
    return apply_env_overrides(config)


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``SIGNALDECK_API_URL`` / ``SIGNALDECK_WS_URL`` on the service section."""
    service = dict(config.get('signal_service') or {})
    api_url = os.getenv("SIGNALDECK_API_URL")
    ws_url = os.getenv("SIGNALDECK_WS_URL")
    if api_url:
        service['api_url'] = api_url
    if ws_url:
        service['ws_url'] = ws_url
    return {**config, 'signal_service': service}


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff with a ceiling and a bounded number of attempts.

    The n-th scheduled attempt (0-based) waits ``min(base_delay * 2**n, max_delay)``.
    """
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_attempts: int = 10

    def __post_init__(self):
        if self.base_delay <= 0 or self.max_delay <= 0:
            raise ConfigurationError("Reconnect delays must be positive")
        if self.max_attempts < 0:
            raise ConfigurationError("max_attempts must be >= 0")

    def delay_for(self, attempts: int) -> float:
        # 2.0 ** 1024 overflows a float
        return min(self.base_delay * (2.0 ** min(attempts, 1000)), self.max_delay)

    @classmethod
    def from_config(
        cls, section: Optional[Dict[str, Any]], default: "ReconnectPolicy"
    ) -> "ReconnectPolicy":
        section = section or {}
        try:
            return cls(
                base_delay=float(section.get('base_delay', default.base_delay)),
                max_delay=float(section.get('max_delay', default.max_delay)),
                max_attempts=int(section.get('max_attempts', default.max_attempts)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid reconnect policy {section!r}: {e}") from e


SIGNAL_FEED_POLICY = ReconnectPolicy(base_delay=1.0, max_delay=30.0, max_attempts=10)
PRICE_FEED_POLICY = ReconnectPolicy(base_delay=3.0, max_delay=30.0, max_attempts=10)


def get_slot_limit(config: Dict[str, Any], default: Optional[int] = 5) -> Optional[int]:
    """Return ``analysis.slot_limit``; ``None`` means the cap is disabled."""
    analysis = config.get('analysis') or {}
    if 'slot_limit' not in analysis:
        return default
    value = analysis['slot_limit']
    if value is None:
        return None
    try:
        value = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid analysis.slot_limit: {value!r}") from e
    if value < 1:
        raise ConfigurationError("analysis.slot_limit must be >= 1 or null")
    return value
