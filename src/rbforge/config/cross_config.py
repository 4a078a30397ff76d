"""Cross-compilation toolchain configuration.

The cross configuration is a YAML document mapping each cross Ruby version
to the rbconfig.rb of a Ruby built for the target platform:

    config-1.8.6: /home/me/.rbforge/ruby/1.8.6/lib/ruby/1.8/i386-mingw32/rbconfig.rb
    config-1.9.1: /home/me/.rbforge/ruby/1.9.1/lib/ruby/1.9.1/i386-mingw32/rbconfig.rb

The document lives at ~/.rbforge/config.yml unless RBFORGE_CONFIG points
elsewhere. A missing document or a missing version entry is not an error
here: callers decide how to degrade.
"""

import os
from pathlib import Path
from typing import Dict, Optional

import yaml

CONFIG_ENV_VAR = "RBFORGE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.rbforge/config.yml")

# 'rbconfig-<version>' is the key written by older setups
KEY_PREFIXES = ("config-", "rbconfig-")


class CrossConfigError(Exception):
    """Raised when the cross configuration document cannot be parsed."""
    pass


class CrossConfig:
    """Read-only view of the cross-compilation configuration document."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize with an explicit path or the default location.

        Args:
            config_path: Path to the YAML document. If None, uses
                RBFORGE_CONFIG or ~/.rbforge/config.yml.
        """
        if config_path is None:
            config_env = os.environ.get(CONFIG_ENV_VAR)
            config_path = Path(config_env) if config_env else DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path).expanduser()
        self._entries: Optional[Dict[str, str]] = None

    def exists(self) -> bool:
        return self.config_path.is_file()

    @property
    def entries(self) -> Dict[str, str]:
        """All entries of the document (empty when it does not exist).

        Raises:
            CrossConfigError: If the document is not a YAML mapping
        """
        if self._entries is None:
            self._entries = self._load()
        return self._entries

    def _load(self) -> Dict[str, str]:
        if not self.exists():
            return {}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CrossConfigError(f"Failed to parse {self.config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CrossConfigError(
                f"{self.config_path} must contain a mapping, got {type(data).__name__}"
            )
        return {str(key): str(value) for key, value in data.items()}

    def rbconfig_for(self, ruby_version: str) -> Optional[str]:
        """Path of the cross rbconfig.rb for a Ruby version, if configured."""
        for prefix in KEY_PREFIXES:
            value = self.entries.get(f"{prefix}{ruby_version}")
            if value:
                return os.path.expanduser(value)
        return None

    @staticmethod
    def mkmf_for(rbconfig_file: str) -> str:
        """Absolute path of the mkmf.rb that ships next to an rbconfig.rb.

        rbconfig.rb lives in the arch directory (lib/ruby/1.8/i386-mingw32),
        mkmf.rb one level up (lib/ruby/1.8).
        """
        rbconfig_dir = os.path.dirname(os.path.expanduser(rbconfig_file))
        return os.path.abspath(os.path.join(rbconfig_dir, "..", "mkmf.rb"))
