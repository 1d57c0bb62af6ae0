"""
Analyzer Configuration

Loads configuration from a YAML file, then applies environment overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


# Configuration file locations (checked in order)
CONFIG_SEARCH_PATHS = [
    Path.home() / ".outerscope" / "config.yaml",
    Path(__file__).parent / "outerscope_config.yaml",
]


DEFAULT_CONFIG: Dict[str, Any] = {
    # Repair loop
    "max_retries": 100,                 # Line-blanking budget for forced requests

    # Worker pool
    "num_workers": min(os.cpu_count() or 2, 4),
    "request_timeout_ms": 30000,        # Host-side wall clock limit per request
    "recycle_after": 5000,              # Respawn a worker after this many analyses

    # Watch mode
    "watch_extensions": [".js"],
    "watch_skip_dirs": [".git", "node_modules", "__pycache__", ".venv", "venv"],
    "watch_interval_seconds": 0.5,
    "watch_debounce_seconds": 1.0,

    "log_level": "WARNING",
}


class AnalyzerConfig:
    """Configuration for the analyzer, its worker pool and watch mode."""

    def __init__(self, config_path: Optional[Path] = None):
        self._config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self._config_path: Optional[Path] = None

        self._load_config(config_path)
        self._apply_env_overrides()

    def _load_config(self, explicit_path: Optional[Path] = None) -> None:
        """Load configuration from YAML file."""
        search_paths = [explicit_path] if explicit_path else CONFIG_SEARCH_PATHS

        for config_path in search_paths:
            if config_path and config_path.exists():
                try:
                    with open(config_path, 'r', encoding='utf-8') as f:
                        user_config = yaml.safe_load(f) or {}
                    if not isinstance(user_config, dict):
                        logger.warning(f"Ignoring {config_path}: top level is not a mapping")
                        continue
                    self._config.update(user_config)
                    self._config_path = config_path
                    return
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Failed to load config from {config_path}: {e}")

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            "OUTERSCOPE_MAX_RETRIES": ("max_retries", int),
            "OUTERSCOPE_WORKERS": ("num_workers", int),
            "OUTERSCOPE_TIMEOUT_MS": ("request_timeout_ms", int),
            "OUTERSCOPE_LOG_LEVEL": ("log_level", str),
        }

        for env_var, (config_key, convert) in env_mappings.items():
            if env_var in os.environ:
                try:
                    self._config[config_key] = convert(os.environ[env_var])
                except ValueError:
                    logger.warning(f"Ignoring {env_var}={os.environ[env_var]!r}: not a valid {convert.__name__}")

    @property
    def config_path(self) -> Optional[Path]:
        """Path to loaded config file, or None if using defaults."""
        return self._config_path

    @property
    def max_retries(self) -> int:
        """Repair budget for requests that allow repair."""
        return max(0, int(self._config.get("max_retries", 100)))

    @property
    def num_workers(self) -> int:
        return max(1, int(self._config.get("num_workers", 1)))

    @property
    def request_timeout_ms(self) -> int:
        return int(self._config.get("request_timeout_ms", 30000))

    @property
    def recycle_after(self) -> int:
        return int(self._config.get("recycle_after", 5000))

    @property
    def watch_extensions(self) -> List[str]:
        return list(self._config.get("watch_extensions", [".js"]))

    @property
    def watch_skip_dirs(self) -> List[str]:
        return list(self._config.get("watch_skip_dirs", []))

    @property
    def watch_interval(self) -> float:
        return float(self._config.get("watch_interval_seconds", 0.5))

    @property
    def watch_debounce(self) -> float:
        return float(self._config.get("watch_debounce_seconds", 1.0))

    @property
    def log_level(self) -> str:
        return str(self._config.get("log_level", "WARNING")).upper()

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dict."""
        return {
            "max_retries": self.max_retries,
            "num_workers": self.num_workers,
            "request_timeout_ms": self.request_timeout_ms,
            "recycle_after": self.recycle_after,
            "watch_extensions": self.watch_extensions,
            "watch_skip_dirs": self.watch_skip_dirs,
            "watch_interval_seconds": self.watch_interval,
            "watch_debounce_seconds": self.watch_debounce,
            "log_level": self.log_level,
            "config_path": str(self._config_path) if self._config_path else None,
        }


# Global config instance
_config: Optional[AnalyzerConfig] = None


def get_config(config_path: Optional[Path] = None) -> AnalyzerConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None or config_path is not None:
        _config = AnalyzerConfig(config_path)
    return _config


def write_default_config(path: Optional[Path] = None) -> Path:
    """
    Write a default configuration file.

    Returns the path where config was written.
    """
    if path is None:
        path = Path.home() / ".outerscope" / "config.yaml"

    path.parent.mkdir(parents=True, exist_ok=True)

    header = (
        "# outerscope configuration\n"
        "#\n"
        "# Any setting here can also be overridden with OUTERSCOPE_MAX_RETRIES,\n"
        "# OUTERSCOPE_WORKERS, OUTERSCOPE_TIMEOUT_MS or OUTERSCOPE_LOG_LEVEL.\n\n"
    )
    with open(path, 'w', encoding='utf-8') as f:
        f.write(header)
        yaml.safe_dump(DEFAULT_CONFIG, f, default_flow_style=False, sort_keys=False)

    return path
