"""Configuration management for couchassembler.

Settings are read from environment variables first and then from
``~/.config/couchassembler/config``, a plain ``KEY=value`` file.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

URL_KEY = "COUCHDB_URL"
USER_KEY = "COUCHDB_USER"
PASSWORD_KEY = "COUCHDB_PASSWORD"
MINIFY_KEY = "COUCHASM_MINIFY"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Config:
    """Persisted settings for the database connection."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/couchassembler/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "couchassembler"
        self.config_dir = config_dir
        self.config_file = config_dir / "config"

    def _read_file(self) -> dict[str, str]:
        """Read the ``KEY=value`` pairs stored in the config file."""
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            with open(self.config_file, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip()
        except OSError as e:
            logger.warning(f"Failed to read config file {self.config_file}: {e}")
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key) or None

    @property
    def database_url(self) -> Optional[str]:
        """URL of the target database."""
        return self._get(URL_KEY)

    @property
    def username(self) -> Optional[str]:
        return self._get(USER_KEY)

    @property
    def password(self) -> Optional[str]:
        return self._get(PASSWORD_KEY)

    @property
    def minify(self) -> bool:
        """Whether JavaScript sources are minified by default."""
        value = self._get(MINIFY_KEY)
        return value is not None and value.lower() in _TRUE_VALUES

    def is_configured(self) -> bool:
        """Check whether a database URL is available."""
        return self.database_url is not None

    def get_config_path(self) -> Path:
        return self.config_file

    def save_settings(
        self,
        database_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        minify: Optional[bool] = None,
    ) -> None:
        """Persist settings to the config file.

        Existing keys that are not passed are kept. The file is created with
        owner-only permissions since it may hold a password.

        Args:
            database_url: URL of the target database
            username: Optional database username
            password: Optional database password
            minify: Optional default for JavaScript minification
        """
        values = self._read_file()
        values[URL_KEY] = database_url
        if username is not None:
            values[USER_KEY] = username
        if password is not None:
            values[PASSWORD_KEY] = password
        if minify is not None:
            values[MINIFY_KEY] = "true" if minify else "false"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            for key, value in values.items():
                f.write(f"{key}={value}\n")
        self.config_file.chmod(0o600)
        logger.debug(f"Saved settings to {self.config_file}")


config = Config()
