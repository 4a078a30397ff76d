"""
Command-line interface for rbforge.

This module provides the `rbforge` CLI tool for compiling, cross compiling
and packaging native Ruby extensions.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rbforge.build import ExtensionConfigError, ExtensionTask, TaskError, TaskRegistry
from rbforge.build.command_executor import BuildActionError
from rbforge.cli_utils import (
    ErrorFormatter,
    PathValidator,
    ProjectLocator,
    TaskListFormatter,
)
from rbforge.config import ProjectConfig, RubyRuntime
from rbforge.config.cross_config import CrossConfigError
from rbforge.config.project_config import ProjectConfigError
from rbforge.packages import GemPackageError, GemPackager

VERSION = "0.1.0"

BUILD_ERRORS = (
    BuildActionError,
    TaskError,
    ProjectConfigError,
    ExtensionConfigError,
    CrossConfigError,
    GemPackageError,
)


@dataclass
class RunArgs:
    """Arguments for the run command."""

    project_dir: Path
    tasks: List[str] = field(default_factory=list)
    config_file: Optional[Path] = None
    progress: bool = False
    verbose: bool = False


@dataclass
class TasksArgs:
    """Arguments for the tasks command."""

    project_dir: Path
    config_file: Optional[Path] = None
    verbose: bool = False


def load_project(
    project_dir: Path,
    config_file: Optional[Path] = None,
    runtime: Optional[RubyRuntime] = None,
    show_progress: bool = False
) -> TaskRegistry:
    """Define the tasks of every extension declared in a project.

    Args:
        project_dir: Project directory
        config_file: Project file name (default: rbforge.ini)
        runtime: Host Ruby runtime (probed if not provided)
        show_progress: Whether gem packaging shows a progress bar

    Returns:
        Registry holding every task of the project

    Raises:
        FileNotFoundError: If the project file doesn't exist
        ProjectConfigError: If the project declares no extension
    """
    ini_path = ProjectLocator.locate_config(project_dir, config_file)
    config = ProjectConfig(ini_path)

    extensions = config.get_extensions()
    if not extensions:
        raise ProjectConfigError(f"No [ext:<name>] section found in {ini_path}")

    registry = TaskRegistry(base_dir=project_dir)
    gem_spec = config.get_gem_spec()
    packager = GemPackager(registry, config.get_package_dir(), show_progress)

    for name in extensions:
        ExtensionTask.from_config(
            config,
            name,
            gem_spec,
            registry=registry,
            runtime=runtime,
            packager=packager,
        ).define()

    return registry


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )


def run_command(args: RunArgs) -> None:
    """Invoke tasks in order.

    Examples:
        rbforge run                    # Run the default tasks (compile)
        rbforge run compile:foo        # Compile only the 'foo' extension
        rbforge run cross compile      # Cross compile every extension
        rbforge run cross native gem   # Package native gems for cross platforms
        rbforge run -C path/to/gem     # Run in another project directory
    """
    print(f"rbforge {VERSION}")
    print()

    try:
        registry = load_project(args.project_dir, args.config_file, show_progress=args.progress)

        tasks = args.tasks
        if not tasks:
            config = ProjectConfig(ProjectLocator.locate_config(args.project_dir, args.config_file))
            tasks = config.get_default_tasks()

        start_time = time.time()
        for name in tasks:
            if args.verbose:
                print(f"Invoking {name}...")
            registry.invoke(name)
        build_time = time.time() - start_time

        ErrorFormatter.print_success(f"{' '.join(tasks)} finished")
        print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except BUILD_ERRORS as e:
        ErrorFormatter.handle_build_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def tasks_command(args: TasksArgs) -> None:
    """List described tasks.

    Examples:
        rbforge tasks                  # List tasks of the current project
        rbforge tasks -C path/to/gem   # List tasks of another project
    """
    try:
        registry = load_project(args.project_dir, args.config_file)
        print(TaskListFormatter.format_tasks(registry.described_tasks()))
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except BUILD_ERRORS as e:
        ErrorFormatter.handle_build_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-C",
        "--directory",
        dest="project_dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-f",
        "--file",
        dest="config_file",
        type=Path,
        default=None,
        help="Project file (default: rbforge.ini)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )


def main() -> None:
    """rbforge - native extension build tasks for Ruby gems."""
    parser = argparse.ArgumentParser(
        prog="rbforge",
        description="rbforge - compile and cross compile native Ruby extensions",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"rbforge {VERSION}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Invoke tasks (default: compile)",
    )
    run_parser.add_argument(
        "tasks",
        nargs="*",
        help="Tasks to invoke in order (e.g., 'cross compile')",
    )
    run_parser.add_argument(
        "--progress",
        action="store_true",
        help="Show progress while packaging gems",
    )
    _add_common_arguments(run_parser)

    # Tasks command
    tasks_parser = subparsers.add_parser(
        "tasks",
        help="List available tasks",
    )
    _add_common_arguments(tasks_parser)

    # Parse arguments
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)
    configure_logging(parsed_args.verbose)

    if parsed_args.command == "run":
        run_args = RunArgs(
            project_dir=parsed_args.project_dir,
            tasks=parsed_args.tasks,
            config_file=parsed_args.config_file,
            progress=parsed_args.progress,
            verbose=parsed_args.verbose,
        )
        run_command(run_args)
    elif parsed_args.command == "tasks":
        tasks_args = TasksArgs(
            project_dir=parsed_args.project_dir,
            config_file=parsed_args.config_file,
            verbose=parsed_args.verbose,
        )
        tasks_command(tasks_args)


if __name__ == "__main__":
    main()
