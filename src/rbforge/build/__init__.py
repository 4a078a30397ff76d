"""
Build system components for rbforge.

This module provides the task graph for native extensions including:
- The task registry and its sequential executor
- Compile subgraphs per (platform, Ruby version)
- Cross compilation and the 'cross' retargeting task
- Native gem packaging tasks
"""

from .command_executor import BuildActionError, CommandExecutor
from .compile_tasks import CompileTaskBuilder
from .cross_tasks import CrossCompileTaskBuilder, CrossSurgery
from .extension_task import ExtensionConfigError, ExtensionTask
from .native_tasks import NativeTaskBuilder
from .tasks import DirectoryTask, FileTask, Task, TaskError, TaskRegistry

__all__ = [
    "Task",
    "FileTask",
    "DirectoryTask",
    "TaskRegistry",
    "TaskError",
    "CommandExecutor",
    "BuildActionError",
    "CompileTaskBuilder",
    "CrossCompileTaskBuilder",
    "CrossSurgery",
    "NativeTaskBuilder",
    "ExtensionTask",
    "ExtensionConfigError",
]
