"""
Extension task definitions for rbforge projects.

This module wires every task needed to compile one native extension:
- The compile subgraph for the host platform
- Native gem packaging, when the extension belongs to a generic gem
- Cross compilation subgraphs for each configured cross platform
- 'clean' and 'clobber'
"""

from typing import Any, Mapping, Optional

from ..config.cross_config import CrossConfig
from ..config.extension_spec import ExtensionSpec
from ..config.project_config import ProjectConfig
from ..config.runtime import RubyRuntime
from ..packages.gem_packager import GemPackager
from ..packages.gem_spec import GemSpecification
from .command_executor import CommandExecutor
from .compile_tasks import CompileTaskBuilder
from .cross_tasks import CrossCompileTaskBuilder
from .native_tasks import NativeTaskBuilder
from .tasks import TaskRegistry


class ExtensionConfigError(Exception):
    """Raised when an extension cannot be defined from its configuration."""
    pass


class ExtensionTask:
    """
    Defines the tasks that compile and package one native extension.

    Example usage:
        registry = TaskRegistry()
        ExtensionTask(
            ExtensionSpec(name="foo", cross_compile=True, cross_platform=["x86-mingw32"]),
            registry=registry,
        ).define()
        registry.invoke("compile")        # builds lib/foo.so for the host
        registry.invoke("cross")          # or retarget first...
        registry.invoke("compile")        # ...then builds for x86-mingw32
    """

    def __init__(
        self,
        spec: ExtensionSpec,
        registry: Optional[TaskRegistry] = None,
        runtime: Optional[RubyRuntime] = None,
        executor: Optional[CommandExecutor] = None,
        cross_config: Optional[CrossConfig] = None,
        packager: Optional[GemPackager] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize extension task.

        Args:
            spec: Extension to define tasks for
            registry: Shared task registry (a new one if not provided)
            runtime: Host Ruby runtime (probed if not provided)
            executor: Runs configure and make (host tools if not provided)
            cross_config: Cross Ruby configuration (default location if not provided)
            packager: Gem packager for native gems (optional)
            environ: Environment for RUBY_CC_VERSION (os.environ if not provided)
        """
        self.spec = spec
        self.registry = registry if registry is not None else TaskRegistry()
        self.runtime = runtime or RubyRuntime.current()
        self.executor = executor
        self.cross_config = cross_config
        self.packager = packager
        self.environ = environ

    @classmethod
    def from_config(
        cls,
        config: ProjectConfig,
        name: str,
        gem_spec: Optional[GemSpecification] = None,
        **kwargs: Any
    ) -> "ExtensionTask":
        """
        Create the task for an [ext:<name>] section of a project file.

        Args:
            config: Parsed rbforge.ini
            name: Extension name (the part after 'ext:')
            gem_spec: Gem the extension belongs to
            **kwargs: Collaborators passed on to the constructor

        Raises:
            ProjectConfigError: If the section is missing or invalid
        """
        return cls(config.get_extension_spec(name, gem_spec), **kwargs)

    @property
    def platform(self) -> str:
        return self.spec.platform or self.runtime.platform

    def define(self) -> TaskRegistry:
        """
        Register every task of this extension.

        Returns:
            The registry the tasks were defined in

        Raises:
            ExtensionConfigError: If the extension has no name
        """
        if not self.spec.name:
            raise ExtensionConfigError("Extension name must be provided.")

        compile_builder = CompileTaskBuilder(
            self.spec, self.registry, self.runtime, self.executor
        )
        native_builder = NativeTaskBuilder(
            self.spec, self.registry, self.runtime, compile_builder, self.packager
        )

        compile_builder.define(self.platform, self.runtime.version)

        # only generic ('ruby') gems get native gem tasks
        if self.spec.packaging_applies:
            native_builder.define(self.platform, self.runtime.version)

        if self.spec.cross_compile:
            cross_builder = CrossCompileTaskBuilder(
                self.spec,
                self.registry,
                self.runtime,
                compile_builder,
                native_builder,
                self.cross_config,
                self.environ
            )
            for platform in self.spec.cross_platforms:
                cross_builder.define(platform)

        self.registry.define_clean_tasks()
        return self.registry
