"""Command Executor.

This module shells out to the external tools an extension build needs:
the Ruby interpreter running the extension's configure script (extconf.rb),
and make/nmake running the generated Makefile.

Design:
    - Wraps subprocess.run with the temporary build directory as cwd
    - Logs every command line before running it
    - Turns non-zero exit codes and missing executables into BuildActionError
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class BuildActionError(Exception):
    """Raised when an external build command fails."""
    pass


class CommandExecutor:
    """Runs configure and make commands for one host.

    Example usage:
        executor = CommandExecutor(ruby="ruby", make="make")
        executor.run_configure(Path("tmp/x86_64-linux/foo/3.2.0"), ["-I.", "/src/ext/foo/extconf.rb"])
        executor.run_make(Path("tmp/x86_64-linux/foo/3.2.0"))
    """

    def __init__(
        self,
        ruby: str = "ruby",
        make: str = "make",
        timeout: Optional[float] = None
    ):
        """Initialize command executor.

        Args:
            ruby: Ruby executable used to run configure scripts
            make: Make program used to build Makefiles
            timeout: Optional timeout in seconds for each command
        """
        self.ruby = ruby
        self.make = make
        self.timeout = timeout

    def run_configure(self, cwd: Path, args: List[str]) -> None:
        """Run the configure script to generate a Makefile.

        Args:
            cwd: Temporary build directory
            args: Ruby command line arguments (options, script, script options)

        Raises:
            BuildActionError: If the script fails
        """
        self.run([self.ruby] + list(args), cwd)

    def run_make(self, cwd: Path) -> None:
        """Build the extension from the Makefile in cwd.

        Raises:
            BuildActionError: If make fails
        """
        self.run([self.make], cwd)

    def run(self, cmd: List[str], cwd: Path) -> None:
        """Run a command, failing loudly on non-zero exit.

        Args:
            cmd: Command and arguments
            cwd: Working directory

        Raises:
            BuildActionError: If the command cannot be started or fails
        """
        logger.info(f"{' '.join(cmd)} (in {cwd})")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise BuildActionError(f"Command not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise BuildActionError(f"Command timed out: {' '.join(cmd)}") from e

        if result.stdout:
            logger.debug(result.stdout.rstrip())

        if result.returncode != 0:
            error_msg = f"Command failed with exit code {result.returncode}: {' '.join(cmd)}\n"
            error_msg += f"stderr: {result.stderr}\n"
            error_msg += f"stdout: {result.stdout}"
            raise BuildActionError(error_msg)
