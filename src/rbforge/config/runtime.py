"""Host Ruby runtime detection.

This module provides the identity of the Ruby the extensions are built
against on this machine: its platform string (RUBY_PLATFORM), its version
(RUBY_VERSION) and the extension of loadable shared objects (DLEXT).

The values are probed once from the `ruby` executable. When no Ruby is
installed (e.g., when only listing tasks) they are derived from the Python
interpreter's view of the host instead.
"""

import logging
import platform
import shutil
import subprocess
import sys
import sysconfig
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_PROBE_SCRIPT = (
    "require 'rbconfig'; "
    "print [RUBY_PLATFORM, RUBY_VERSION, RbConfig::CONFIG['DLEXT']].join(' ')"
)

_current: Optional["RubyRuntime"] = None


@dataclass(frozen=True)
class RubyRuntime:
    """Identity of a Ruby runtime."""

    platform: str
    version: str
    dlext: str
    ruby: str = "ruby"

    @staticmethod
    def current() -> "RubyRuntime":
        """Return the host runtime, probing it on first use."""
        global _current
        if _current is None:
            _current = RubyRuntime.probe() or RubyRuntime.from_python()
        return _current

    @staticmethod
    def probe(ruby: str = "ruby") -> Optional["RubyRuntime"]:
        """Ask a Ruby executable for its identity.

        Args:
            ruby: Ruby executable name or path

        Returns:
            The runtime, or None when the executable is not available
        """
        executable = shutil.which(ruby)
        if executable is None:
            logger.debug(f"{ruby} not found on PATH")
            return None

        try:
            result = subprocess.run(
                [executable, "-e", _PROBE_SCRIPT],
                capture_output=True,
                text=True,
                timeout=30
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Failed to probe {executable}: {e}")
            return None

        fields = result.stdout.split()
        if result.returncode != 0 or len(fields) != 3:
            logger.debug(f"Unexpected answer from {executable}: {result.stderr.strip()}")
            return None

        return RubyRuntime(
            platform=fields[0],
            version=fields[1],
            dlext=fields[2],
            ruby=executable
        )

    @staticmethod
    def from_python() -> "RubyRuntime":
        """Derive a best-effort runtime identity from the Python host.

        Produces Ruby-style platform strings such as 'x86_64-linux',
        'arm64-darwin' or 'x64-mingw32'.
        """
        system = platform.system().lower()
        machine = platform.machine().lower() or "unknown"

        if machine in ("amd64", "x86_64"):
            machine = "x86_64"
        elif machine in ("aarch64", "arm64"):
            machine = "arm64" if system == "darwin" else "aarch64"

        if system == "windows":
            ruby_platform = "x64-mingw32" if sys.maxsize > 2**32 else "i386-mingw32"
            dlext = "so"
        elif system == "darwin":
            ruby_platform = f"{machine}-darwin"
            dlext = "bundle"
        else:
            ruby_platform = f"{machine}-{system}"
            suffix = sysconfig.get_config_var("SHLIB_SUFFIX") or ".so"
            dlext = suffix.lstrip(".")

        return RubyRuntime(platform=ruby_platform, version="0.0.0", dlext=dlext)
