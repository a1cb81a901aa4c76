import os
import json
import logging
from typing import Any, Dict, Optional

from .models import WarningThresholds

DB_PATH: str = os.path.expanduser(os.environ.get("SAFEHOURS_DB", "~/.local/share/safehours.db"))

# User configuration file path
USER_CONFIG_PATH: str = os.path.expanduser(
    os.environ.get("SAFEHOURS_CONFIG", "~/.config/safehours/settings.json")
)

# Dashboard ports tried in order
WEB_PORTS = (5050, 8080, 5000)

# Debug mode - logs detailed calculation information
DEBUG_MODE: bool = os.environ.get("SAFEHOURS_DEBUG", "0") == "1"
DEBUG_LOG_PATH: str = os.path.expanduser("~/.local/share/safehours_debug.log")

logger = logging.getLogger(__name__)


def setup_logging(debug: Optional[bool] = None) -> None:
    """Configure root logging: debug file in debug mode, INFO to stderr otherwise."""
    if debug is None:
        debug = DEBUG_MODE
    fmt = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    if debug:
        os.makedirs(os.path.dirname(DEBUG_LOG_PATH), exist_ok=True)
        logging.basicConfig(level=logging.DEBUG, filename=DEBUG_LOG_PATH, format=fmt)
    else:
        logging.basicConfig(level=logging.INFO, format=fmt)


# --- Dynamic Configuration Class ---

class Config:
    """
    Manages the warning thresholds stored in the user's JSON file.

    Thresholds can be changed and reloaded at runtime; the flight
    instruction limit always stays at its regulatory value.
    """

    def __init__(self, config_path: str = USER_CONFIG_PATH):
        self.config_path = config_path
        self._user_config: Dict[str, Any] = {}
        self.thresholds: WarningThresholds = WarningThresholds()
        self.reload()

    def _load_user_config(self) -> Dict[str, Any]:
        """Load user configuration from file."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning("Ignoring config %s: top level is not an object", self.config_path)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Ignoring unreadable config %s: %s", self.config_path, e)
        return {}

    def reload(self) -> None:
        """
        Reload configuration from disk, falling back to default thresholds.
        """
        self._user_config = self._load_user_config()
        try:
            self.thresholds = WarningThresholds.from_dict(self._user_config.get('thresholds', {}))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Invalid thresholds in %s, using defaults: %s", self.config_path, e)
            self.thresholds = WarningThresholds()

    def save(self) -> None:
        """Write the current configuration to disk."""
        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._user_config['thresholds'] = self.thresholds.to_dict()
        with open(self.config_path, 'w') as f:
            json.dump(self._user_config, f, indent=2)

    def update_thresholds(self, **changes: Any) -> WarningThresholds:
        """Merge threshold changes and persist them."""
        merged = self.thresholds.to_dict()
        merged.update(changes)
        self.thresholds = WarningThresholds.from_dict(merged)
        self.save()
        return self.thresholds

    def reset_thresholds(self) -> WarningThresholds:
        """Restore default thresholds and persist them."""
        self.thresholds = WarningThresholds()
        self.save()
        return self.thresholds


# --- Singleton Instance ---
settings = Config()
