"""CLI utility functions for rbforge.

This module provides common utilities used across CLI commands including:
- Locating the project file
- Formatting the task list
- Error handling and formatting
"""

import sys
from pathlib import Path
from typing import List, Optional

from rbforge.build.tasks import Task

PROJECT_FILE = "rbforge.ini"


class ProjectLocator:
    """Handles locating rbforge.ini for a project directory."""

    @staticmethod
    def locate_config(project_dir: Path, config_file: Optional[Path] = None) -> Path:
        """Find the project file to load.

        Args:
            project_dir: Project directory
            config_file: Optional explicit project file (relative to project_dir)

        Returns:
            Path to the project file

        Raises:
            FileNotFoundError: If the project file doesn't exist
        """
        ini_path = project_dir / (config_file or PROJECT_FILE)
        if not ini_path.exists():
            raise FileNotFoundError(f"{ini_path.name} not found in {project_dir}")
        return ini_path


class TaskListFormatter:
    """Formats described tasks the way 'rake -T' does."""

    @staticmethod
    def format_tasks(tasks: List[Task], prog: str = "rbforge") -> str:
        """Format one line per task, comments aligned.

        Example:
            rbforge clean          # Remove any temporary products.
            rbforge compile        # Compile all the extensions
        """
        if not tasks:
            return ""
        width = max(len(task.name) for task in tasks)
        return "\n".join(
            f"{prog} {task.name.ljust(width)}  # {task.comment}" for task in tasks
        )


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Task failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        """Handle FileNotFoundError with standard formatting.

        Args:
            error: The FileNotFoundError to handle
        """
        ErrorFormatter.print_error("Error: File not found", str(error))
        print(
            f"Make sure you're in an rbforge project directory with an {PROJECT_FILE} file."
        )
        sys.exit(1)

    @staticmethod
    def handle_build_error(error: Exception) -> None:
        """Handle a failed task or invalid configuration.

        Args:
            error: The exception to report
        """
        ErrorFormatter.print_error("Build failed!", str(error))
        sys.exit(1)

    @staticmethod
    def handle_permission_error(error: PermissionError) -> None:
        ErrorFormatter.print_error("Error: Permission denied", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Args:
            project_dir: Path to validate

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
