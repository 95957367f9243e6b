# Nexus configuration
# Defaults, overridden by nexus.yaml, overridden by environment variables.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "nexus" / "nexus.yaml"

# Environment variable -> Config attribute
ENV_OVERRIDES = {
    "FIREBASE_API_KEY": "firebase_api_key",
    "FIREBASE_PROJECT_ID": "firebase_project_id",
    "FIRESTORE_DATABASE": "firestore_database",
    "NEXUS_CACHE_PATH": "cache_path",
}

REQUIRED_REMOTE_KEYS = ("firebase_api_key", "firebase_project_id")


@dataclass
class Config:
    """Runtime configuration for the board core."""

    # Remote document store (Firestore REST)
    firebase_api_key: str = ""
    firebase_project_id: str = ""
    firestore_database: str = "(default)"
    firestore_base_url: str = "https://firestore.googleapis.com/v1"

    # Network behavior
    request_timeout: float = 5.0
    poll_interval_secs: float = 5.0
    page_size: int = 300

    # Local cache
    cache_path: str = "~/.local/share/nexus/state.db"
    cache_namespace: str = "nexus-tasks"

    def missing_remote_keys(self) -> List[str]:
        return [name for name in REQUIRED_REMOTE_KEYS if not getattr(self, name)]

    @property
    def is_remote_configured(self) -> bool:
        return not self.missing_remote_keys()

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Override settings from environment variables that are set and non-empty."""
        env = os.environ if environ is None else environ
        for var, attr in ENV_OVERRIDES.items():
            value = env.get(var)
            if value:
                setattr(self, attr, value)

    def resolve_paths(self):
        """Expand ~ in filesystem paths."""
        self.cache_path = str(Path(self.cache_path).expanduser())

    @classmethod
    def load(cls, path: Optional[str] = None,
             environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        known = {f.name for f in fields(cls)}
        cfg = cls()
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, TypeError, AttributeError, yaml.YAMLError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        cfg.apply_env(environ)
        cfg.resolve_paths()
        missing = cfg.missing_remote_keys()
        if missing:
            logger.warning(
                f"Remote store not configured (missing: {', '.join(missing)}). "
                "Sample data will be used."
            )
        return cfg
