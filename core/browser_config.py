"""Browser Configuration - Single Authority for Browser Policy

Panels and the browser process read from here, never decide policy.

RESPONSIBILITY:
- Load browser.yaml
- Provide get() singleton
- Expose typed config values

DOES NOT:
- Launch anything (BrowserProcess's job)
- Track panels (PanelManager's job)
"""

import logging
import shlex
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, List, Optional, Literal, Union


@dataclass(frozen=True)
class BrowserSettings:
    """Immutable browser configuration snapshot."""
    start_url: str = "https://www.google.com"
    debug_port: int = 9222
    proxy: str = ""
    other_args: Union[str, List[str]] = ""
    chrome_executable: Optional[str] = None
    store_user_data: bool = False
    local_file_auto_reload: bool = False
    ignore_https_errors: bool = False
    theme: Literal["dark", "light"] = "dark"
    headless: bool = True
    storage_dir: str = "~/.browse_panel"

    @property
    def extra_args(self) -> List[str]:
        """other_args as an argv list (strings are split shell-style)."""
        if not self.other_args:
            return []
        if isinstance(self.other_args, str):
            return shlex.split(self.other_args)
        return [str(arg) for arg in self.other_args]

    @property
    def user_data_dir(self) -> Optional[str]:
        """Persistent profile directory, or None for an ephemeral profile."""
        if not self.store_user_data:
            return None
        return str(Path(self.storage_dir).expanduser() / "UserData")

    @property
    def is_dark_theme(self) -> bool:
        return self.theme == "dark"


class BrowserConfig:
    """Singleton browser configuration authority.

    Usage:
        config = BrowserConfig.get()
        settings = config.settings
        port = settings.debug_port
    """

    _instance: Optional["BrowserConfig"] = None
    _settings: Optional[BrowserSettings] = None

    CONFIG_PATH = Path(__file__).parent.parent / "config" / "browser.yaml"

    # Defaults (used if yaml missing or invalid)
    DEFAULTS = {f.name: f.default for f in fields(BrowserSettings)}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance

    @classmethod
    def get(cls) -> "BrowserConfig":
        """Get singleton instance."""
        return cls()

    @property
    def settings(self) -> BrowserSettings:
        """Get current browser settings."""
        if self._settings is None:
            self._load()
        return self._settings

    def _load(self) -> None:
        """Load configuration from browser.yaml."""
        config_path = Path(self.CONFIG_PATH)

        raw_config: Dict[str, Any] = {}

        if config_path.exists():
            try:
                import yaml
                with open(config_path, encoding="utf-8") as f:
                    full_config = yaml.safe_load(f) or {}
                    raw_config = full_config.get("browser", {}) or {}
                    logging.info(f"Loaded browser config from {config_path}")
            except Exception as e:
                logging.warning(f"Failed to load browser.yaml: {e}, using defaults")
        else:
            logging.info(f"No browser.yaml found at {config_path}, using defaults")

        unknown = set(raw_config) - set(self.DEFAULTS)
        if unknown:
            logging.warning(f"Ignoring unknown browser settings: {sorted(unknown)}")

        # Merge with defaults
        merged = {**self.DEFAULTS, **{k: v for k, v in raw_config.items() if k in self.DEFAULTS}}

        self._settings = BrowserSettings(**merged)

        logging.debug(f"BrowserConfig: {self._settings}")

    def reload(self) -> "BrowserConfig":
        """Force reload configuration."""
        self._load()
        return self


def load_settings() -> BrowserSettings:
    """Fresh settings snapshot (re-reads browser.yaml)."""
    return BrowserConfig.get().reload().settings
