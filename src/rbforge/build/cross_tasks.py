"""Cross compilation task definitions.

For a target platform other than the host, the compile subgraph is built
against a foreign Ruby: the Makefile task additionally depends on

    <tmp>/fake.rb      overrides RUBY_PLATFORM and RUBY_VERSION
    <tmp>/rbconfig.rb  copied from the cross Ruby
    <tmp>/mkmf.rb      copied from the cross Ruby

The subgraph stays out of 'compile' until the 'cross' task runs. Invoking
'cross' rewires the umbrella tasks so that a following 'compile' (and
'native') build the cross targets instead of the host:

    rbforge run cross compile
"""

import logging
import os
import posixpath
import shutil
import textwrap
from functools import partial
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional

from ..config.cross_config import CrossConfig
from ..config.extension_spec import ExtensionSpec
from ..config.runtime import RubyRuntime
from .compile_tasks import CompileTaskBuilder
from .native_tasks import NativeTaskBuilder
from .tasks import Task, TaskRegistry

logger = logging.getLogger(__name__)

CROSS_VERSIONS_ENV_VAR = "RUBY_CC_VERSION"


def fake_rb(platform: str, ruby_version: str) -> str:
    """Ruby source that makes the configure script see the target Ruby."""
    return textwrap.dedent(f"""\
        class Object
          remove_const :RUBY_PLATFORM
          remove_const :RUBY_VERSION
          RUBY_PLATFORM = "{platform}"
          RUBY_VERSION = "{ruby_version}"
        end
        """)


class CrossSurgery:
    """Action of the 'cross' task.

    Holds one retargeting step per (extension, platform, version) and the
    union of cross platforms of every extension registered so far, so that
    each step only drops host edges and keeps the other cross targets.
    """

    def __init__(self):
        self.platforms: Dict[str, None] = {}
        self.steps: Dict[Hashable, Callable[[], None]] = {}

    def add_platforms(self, platforms: Iterable[str]) -> None:
        for platform in platforms:
            self.platforms.setdefault(platform, None)

    def add_step(self, key: Hashable, step: Callable[[], None]) -> None:
        self.steps.setdefault(key, step)

    def __call__(self, task: Task) -> None:
        for step in list(self.steps.values()):
            step()


def cross_surgery(registry: TaskRegistry) -> CrossSurgery:
    """Get or create the 'cross' task and return its surgery action."""
    task = registry.task("cross")
    for action in task.actions:
        if isinstance(action, CrossSurgery):
            return action

    surgery = CrossSurgery()
    task.actions.append(surgery)
    registry.describe("cross", "Force the compile and native tasks to target the cross platforms")
    return surgery


class CrossCompileTaskBuilder:
    """Registers cross compilation subgraphs for one extension."""

    def __init__(
        self,
        spec: ExtensionSpec,
        registry: TaskRegistry,
        runtime: RubyRuntime,
        compile_builder: CompileTaskBuilder,
        native_builder: Optional[NativeTaskBuilder] = None,
        cross_config: Optional[CrossConfig] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """Initialize cross compile task builder.

        Args:
            spec: Extension to cross compile
            registry: Task registry to define tasks in
            runtime: Host Ruby runtime
            compile_builder: Builder of the per-combination compile subgraph
            native_builder: Builder of native gem tasks (optional)
            cross_config: Cross Ruby configuration (defaults to ~/.rbforge/config.yml)
            environ: Environment to read RUBY_CC_VERSION from (defaults to os.environ)
        """
        self.spec = spec
        self.registry = registry
        self.runtime = runtime
        self.compile_builder = compile_builder
        self.native_builder = native_builder
        self.cross_config = cross_config or CrossConfig()
        self.environ = os.environ if environ is None else environ

    def ruby_versions(self) -> List[str]:
        """Ruby versions to cross compile for."""
        versions = self.environ.get(CROSS_VERSIONS_ENV_VAR)
        if versions:
            return [version for version in versions.split(os.pathsep) if version]
        return [self.runtime.version]

    def define(self, platform: str) -> None:
        """Register cross compilation for every configured Ruby version."""
        for ruby_version in self.ruby_versions():
            self.define_version(platform, ruby_version)

    def define_version(self, platform: str, ruby_version: str) -> bool:
        """Register cross compilation for one (platform, version).

        Missing configuration skips this combination with a warning and
        leaves the registry untouched.

        Returns:
            True if tasks were defined
        """
        if not self.cross_config.exists():
            logger.warning(
                "rbforge must be configured first to enable cross-compilation "
                f"({self.cross_config.config_path} not found)"
            )
            return False

        rbconfig_file = self.cross_config.rbconfig_for(ruby_version)
        if not rbconfig_file:
            logger.warning(
                "no configuration section for specified version of Ruby "
                f"(config-{ruby_version})"
            )
            return False

        mkmf_file = CrossConfig.mkmf_for(rbconfig_file)

        registry = self.registry
        tmp_path = self.compile_builder.tmp_path(platform, ruby_version)
        fake_file = posixpath.join(tmp_path, "fake.rb")
        tmp_rbconfig = posixpath.join(tmp_path, "rbconfig.rb")
        tmp_mkmf = posixpath.join(tmp_path, "mkmf.rb")

        self.compile_builder.define(platform, ruby_version)

        registry.file(
            posixpath.join(tmp_path, "Makefile"),
            [fake_file, tmp_rbconfig, tmp_mkmf]
        )

        registry.file(tmp_rbconfig, [rbconfig_file], _copy_first_prerequisite)
        registry.file(tmp_mkmf, [mkmf_file], _copy_first_prerequisite)

        def write_fake_rb(task: Task) -> None:
            path = registry.path(task.name)
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Generating {task.name}")
            path.write_text(fake_rb(platform, ruby_version), encoding="utf-8")

        registry.file(fake_file, action=write_fake_rb)

        if self.native_builder is not None:
            self.native_builder.define(platform, ruby_version)

        surgery = cross_surgery(registry)
        surgery.add_platforms(self.spec.cross_platforms)
        surgery.add_platforms([platform])
        surgery.add_step(
            (self.spec.name, platform, ruby_version),
            partial(self._retarget, surgery, platform, ruby_version)
        )
        return True

    def _retarget(self, surgery: CrossSurgery, platform: str, ruby_version: str) -> None:
        registry = self.registry

        # keep only cross platform compiles, then chain this one
        compiles = {f"compile:{p}" for p in surgery.platforms}
        _keep_prerequisites(registry.task("compile"), compiles)
        registry.task("compile", [f"compile:{platform}"])

        # lib/<binary> was chained to the host copy task
        lib_file = self.compile_builder.lib_path(platform)
        if registry.is_defined(lib_file):
            registry[lib_file].clear_prerequisites()
        registry.file(lib_file, [self.compile_builder.copy_task_name(platform, ruby_version)])

        if self.spec.packaging_applies:
            natives = {f"native:{p}" for p in surgery.platforms}
            _keep_prerequisites(registry.task("native"), natives)
            registry.task("native", [f"native:{platform}"])

        logger.debug(f"Retargeted compile to {platform} ({self.spec.name} {ruby_version})")


def _keep_prerequisites(task: Task, allowed: Iterable[str]) -> None:
    allowed = set(allowed)
    task.prerequisites[:] = [p for p in task.prerequisites if p in allowed]


def _copy_first_prerequisite(task: Task) -> None:
    source = task.registry.path(task.prerequisites[0])
    target = task.registry.path(task.name)
    target.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"cp {task.prerequisites[0]} {task.name}")
    shutil.copy(source, target)
