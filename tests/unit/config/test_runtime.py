"""Unit tests for host Ruby runtime detection."""

import subprocess
from unittest.mock import MagicMock, patch

from rbforge.config.runtime import RubyRuntime


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestRubyRuntime:
    """Test runtime identity."""

    def test_probe(self):
        """Test the identity reported by a Ruby executable."""
        with patch("shutil.which", return_value="/usr/bin/ruby"), \
                patch("subprocess.run", return_value=completed(stdout="x86_64-linux 3.2.2 so")):
            runtime = RubyRuntime.probe()

        assert runtime == RubyRuntime(
            platform="x86_64-linux", version="3.2.2", dlext="so", ruby="/usr/bin/ruby"
        )

    def test_probe_without_ruby(self):
        """Test no runtime when ruby is not on PATH."""
        with patch("shutil.which", return_value=None):
            assert RubyRuntime.probe() is None

    def test_probe_failure(self):
        """Test a failing ruby yields no runtime."""
        with patch("shutil.which", return_value="/usr/bin/ruby"), \
                patch("subprocess.run", return_value=completed(1, stderr="boom")):
            assert RubyRuntime.probe() is None

    def test_probe_timeout(self):
        with patch("shutil.which", return_value="/usr/bin/ruby"), \
                patch("subprocess.run", side_effect=subprocess.TimeoutExpired(["ruby"], 30)):
            assert RubyRuntime.probe() is None

    def test_from_python_linux(self):
        """Test a Ruby-style platform derived on Linux."""
        with patch("platform.system", return_value="Linux"), \
                patch("platform.machine", return_value="AMD64"), \
                patch("sysconfig.get_config_var", return_value=".so"):
            runtime = RubyRuntime.from_python()

        assert runtime.platform == "x86_64-linux"
        assert runtime.dlext == "so"
        assert runtime.version == "0.0.0"

    def test_from_python_darwin(self):
        with patch("platform.system", return_value="Darwin"), \
                patch("platform.machine", return_value="arm64"):
            runtime = RubyRuntime.from_python()

        assert runtime.platform == "arm64-darwin"
        assert runtime.dlext == "bundle"
