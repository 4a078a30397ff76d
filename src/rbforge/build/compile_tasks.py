"""Compile task definitions.

Builds the subgraph that compiles one extension for one (platform, Ruby
version) combination:

    compile => compile:<platform> => compile:<name>:<platform>
        => copy:<name>:<platform>:<version>
            => <lib_dir>
            => <tmp>/<name>.<dlext>
                => <tmp>/Makefile => <tmp>, <ext_dir>/extconf.rb
                => <ext_dir>/*.c

Only the combination matching the host platform is chained into 'compile'
and 'compile:<name>'. Other platforms stay reachable through their explicit
per-platform tasks until cross compilation rewires them.
"""

import logging
import posixpath
import shutil
from typing import List, Optional

from ..config.extension_spec import ExtensionSpec
from ..config.runtime import RubyRuntime
from . import naming
from .command_executor import CommandExecutor
from .tasks import Task, TaskRegistry

logger = logging.getLogger(__name__)


class CompileTaskBuilder:
    """Registers compile subgraphs for one extension."""

    def __init__(
        self,
        spec: ExtensionSpec,
        registry: TaskRegistry,
        runtime: RubyRuntime,
        executor: Optional[CommandExecutor] = None
    ):
        """Initialize compile task builder.

        Args:
            spec: Extension to compile
            registry: Task registry to define tasks in
            runtime: Host Ruby runtime
            executor: Runs configure and make (defaults to the host tools)
        """
        self.spec = spec
        self.registry = registry
        self.runtime = runtime
        self.executor = executor or CommandExecutor(
            ruby=runtime.ruby,
            make=naming.make_program(runtime.platform)
        )
        self._source_files: Optional[List[str]] = None

    def binary(self, platform: str) -> str:
        return naming.binary(self.spec.name, platform, self.runtime.dlext)

    def tmp_path(self, platform: str, ruby_version: str) -> str:
        return naming.tmp_path(self.spec.tmp_dir, platform, self.spec.name, ruby_version)

    def lib_path(self, platform: str) -> str:
        return naming.lib_path(self.spec.lib_dir, self.spec.name, platform, self.runtime.dlext)

    def copy_task_name(self, platform: str, ruby_version: str) -> str:
        return f"copy:{self.spec.name}:{platform}:{ruby_version}"

    @property
    def source_files(self) -> List[str]:
        """Sources matched by the source pattern, resolved once.

        An empty list is not an error: the Makefile may still know how to
        build the extension.
        """
        if self._source_files is None:
            ext_dir = self.registry.path(self.spec.ext_dir)
            base_dir = self.registry.base_dir
            self._source_files = [
                path.relative_to(base_dir).as_posix()
                for path in sorted(ext_dir.glob(self.spec.source_pattern))
                if path.is_file()
            ]
        return self._source_files

    def define(self, platform: str, ruby_version: str) -> None:
        """Register the compile subgraph for one combination.

        Args:
            platform: Ruby platform to build for
            ruby_version: Ruby version to build against
        """
        registry = self.registry
        name = self.spec.name
        lib_dir = self.spec.lib_dir
        tmp_path = self.tmp_path(platform, ruby_version)
        binary = self.binary(platform)
        tmp_binary = posixpath.join(tmp_path, binary)
        makefile = posixpath.join(tmp_path, "Makefile")
        copy_task = self.copy_task_name(platform, ruby_version)

        # cleanup and clobbering
        registry.add_clean(tmp_path)
        registry.add_clobber(posixpath.join(lib_dir, binary))
        registry.add_clobber(self.spec.tmp_dir)

        registry.directory(tmp_path)
        registry.directory(lib_dir)

        # tmp/.../foo.so => lib/foo.so
        def copy_binary(task: Task) -> None:
            source = registry.path(tmp_binary)
            target = registry.path(posixpath.join(lib_dir, binary))
            logger.info(f"cp {tmp_binary} {lib_dir}/{binary}")
            shutil.copy(source, target)

        registry.task(copy_task, [lib_dir, tmp_binary], copy_binary)

        def build_binary(task: Task) -> None:
            self.executor.run_make(registry.path(tmp_path))

        registry.file(tmp_binary, [makefile] + self.source_files, build_binary)

        def configure(task: Task) -> None:
            self.executor.run_configure(
                registry.path(tmp_path),
                self.configure_args(task, tmp_path)
            )

        registry.file(makefile, [tmp_path, self.spec.extconf], configure)

        if not registry.is_defined("compile"):
            registry.task("compile")
            registry.describe("compile", "Compile all the extensions")

        if not registry.is_defined(f"compile:{name}"):
            registry.task(f"compile:{name}")
            registry.describe(f"compile:{name}", f"Compile {name}")

        # segmented compilation by platform
        registry.task(f"compile:{name}:{platform}", [copy_task])
        registry.task(f"compile:{platform}", [f"compile:{name}:{platform}"])

        if platform == self.runtime.platform:
            registry.file(posixpath.join(lib_dir, binary), [copy_task])
            registry.task(f"compile:{name}", [f"compile:{name}:{platform}"])
            registry.task("compile", [f"compile:{platform}"])

    def configure_args(self, task: Task, tmp_path: str) -> List[str]:
        """Ruby arguments that run the configure script for a Makefile task.

        Cross builds are recognised from the task's prerequisites alone:
        fake.rb adds '-rfake', rbconfig.rb adds the cross configure options.
        """
        options = list(self.spec.config_options)
        args = ["-I."]

        if posixpath.join(tmp_path, "fake.rb") in task.prerequisites:
            args.append("-rfake")

        args.append(str(self.registry.path(self.spec.extconf).resolve()))

        if posixpath.join(tmp_path, "rbconfig.rb") in task.prerequisites:
            options.extend(self.spec.cross_config_options)

        args.extend(options)
        return args
