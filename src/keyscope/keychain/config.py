# src/keyscope/keychain/config.py

import json
import logging
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_ENV = "KEYSCOPE_CONFIG"
STORE_ENV = "KEYSCOPE_STORE"
DEFAULT_DIR = Path.home() / ".config" / "keyscope"


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV) or DEFAULT_DIR / "config.json")


def default_store_path() -> Path:
    return Path(os.environ.get(STORE_ENV) or DEFAULT_DIR / "keychain.json")


@dataclass
class Preferences:
    """Persisted user choices. An empty target group means "nothing selected"."""

    target_access_group: str = ""
    store_path: str = field(default_factory=lambda: str(default_store_path()))

    @property
    def has_group(self) -> bool:
        return bool(self.target_access_group.strip())

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Preferences":
        path = path or default_config_path()
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", path, e)
            return cls()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences file %s", path)
            return cls()

        prefs = cls()
        if isinstance(data.get("target_access_group"), str):
            prefs.target_access_group = data["target_access_group"]
        # An explicit environment override beats the stored location
        if isinstance(data.get("store_path"), str) and not os.environ.get(STORE_ENV):
            prefs.store_path = data["store_path"]
        return prefs

    def save(self, path: Optional[Path] = None):
        path = path or default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=4, ensure_ascii=False), encoding="utf-8")
        logger.debug("Preferences written to %s", path)
