"""Native gem task definitions.

A generic ('ruby' platform) gem ships C sources. For every platform an
extension is compiled for, 'native:<gem>:<platform>' derives a gem
specification carrying the precompiled binary instead and defines the task
that packages it:

    native => native:<platform> => native:<gem>:<platform>
        => <tmp>/<name>.<dlext>

Like compile tasks, only the host platform is chained into 'native' and
'native:<gem>'.
"""

import logging
import posixpath
from functools import partial
from typing import Optional

from ..config.extension_spec import ExtensionSpec
from ..config.runtime import RubyRuntime
from ..packages.gem_packager import GemPackager
from .compile_tasks import CompileTaskBuilder
from .tasks import Task, TaskRegistry

logger = logging.getLogger(__name__)


def required_ruby_version(ruby_version: str) -> str:
    """Oldest Ruby of the version line binaries built for ruby_version load on.

    Examples:
        >>> required_ruby_version("1.8.7")
        '1.8.6'
        >>> required_ruby_version("3.2.2")
        '3.2.0'
    """
    parts = ruby_version.split(".")
    if parts[:2] == ["1", "8"]:
        return "1.8.6"
    major = parts[0]
    minor = parts[1] if len(parts) > 1 else "0"
    return f"{major}.{minor}.0"


class NativeTaskBuilder:
    """Registers native gem packaging tasks for one extension."""

    def __init__(
        self,
        spec: ExtensionSpec,
        registry: TaskRegistry,
        runtime: RubyRuntime,
        compile_builder: CompileTaskBuilder,
        packager: Optional[GemPackager] = None
    ):
        self.spec = spec
        self.registry = registry
        self.runtime = runtime
        self.compile_builder = compile_builder
        self.packager = packager or GemPackager(registry)

    def define(self, platform: str, ruby_version: str) -> None:
        """Register native packaging for one combination.

        Does nothing unless the extension belongs to a generic gem.

        Args:
            platform: Ruby platform the binary is built for
            ruby_version: Ruby version the binary is built against
        """
        if not self.spec.packaging_applies:
            return

        registry = self.registry
        gem_name = self.spec.gem_spec.name
        native_task = f"native:{gem_name}:{platform}"
        tmp_binary = posixpath.join(
            self.compile_builder.tmp_path(platform, ruby_version),
            self.compile_builder.binary(platform)
        )

        # With several Ruby versions the action stays bound to the first one.
        # The archive then holds that version's binary only because its copy
        # task is the package's last prerequisite and runs after lib/<binary>
        # (which 'cross' points at the last version's copy).
        if not registry.is_defined(native_task):
            registry.task(
                native_task,
                action=partial(self._package, platform=platform, ruby_version=ruby_version)
            )

        # binaries this gem carries
        registry.task(native_task, [tmp_binary])

        # segmented packaging by platform
        registry.task(f"native:{platform}", [native_task])

        if not registry.is_defined("native"):
            registry.task("native")
            registry.describe("native", "Build the native gems")

        if platform == self.runtime.platform:
            registry.task(f"native:{gem_name}", [native_task])
            registry.task("native", [f"native:{platform}"])

    def _package(self, task: Task, platform: str, ruby_version: str) -> None:
        lib_dir = self.spec.lib_dir

        spec = self.spec.gem_spec.copy()
        spec.platform = platform
        spec.extensions.clear()

        # binaries end up in lib_dir, make sure each one gets copied there
        ext_files = []
        for prerequisite in task.prerequisites:
            basename = posixpath.basename(prerequisite)
            lib_file = posixpath.join(lib_dir, basename)
            if not self.registry.is_defined(lib_file):
                stem = posixpath.splitext(basename)[0]
                self.registry.file(lib_file, [f"copy:{stem}:{platform}:{ruby_version}"])
            if lib_file not in ext_files:
                ext_files.append(lib_file)

        spec.files += [f for f in ext_files if f not in spec.files]
        spec.required_ruby_version = f"~> {required_ruby_version(ruby_version)}"

        package = self.packager.define(spec)
        logger.debug(f"Defined {package.path} for {task.name}")

        # the archive needs the copied binary
        self.registry.task(
            package.path,
            [self.compile_builder.copy_task_name(platform, ruby_version)]
        )
