"""
Unit tests for CompileTaskBuilder.

Tests the per-combination compile subgraph:
- Node layout and prerequisites
- Idempotent registration
- Host platform gating of the umbrella tasks
- Configure command composition
- Execution with a mocked command executor
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from rbforge.build.command_executor import CommandExecutor
from rbforge.build.compile_tasks import CompileTaskBuilder
from rbforge.build.tasks import TaskRegistry
from rbforge.config import ExtensionSpec, RubyRuntime

TMP = "tmp/x86_64-linux/foo/3.2.0"


@pytest.fixture
def project(tmp_path):
    """Create an extension source tree."""
    ext_dir = tmp_path / "ext" / "foo"
    ext_dir.mkdir(parents=True)
    (ext_dir / "extconf.rb").write_text("require 'mkmf'\ncreate_makefile('foo')\n")
    (ext_dir / "foo.c").write_text("void Init_foo(void) {}\n")
    (ext_dir / "util.c").write_text("int util;\n")
    (ext_dir / "notes.txt").write_text("not a source\n")
    return tmp_path


@pytest.fixture
def runtime():
    return RubyRuntime(platform="x86_64-linux", version="3.2.0", dlext="so")


@pytest.fixture
def executor():
    """Mock executor producing the Makefile and the binary."""
    executor = Mock(spec=CommandExecutor)
    executor.run_configure.side_effect = lambda cwd, args: (Path(cwd) / "Makefile").write_text("all:\n")
    executor.run_make.side_effect = lambda cwd: (Path(cwd) / "foo.so").write_text("ELF")
    return executor


@pytest.fixture
def registry(project):
    return TaskRegistry(base_dir=project)


@pytest.fixture
def builder(registry, runtime, executor):
    spec = ExtensionSpec(name="foo", config_options=["--with-bar"], cross_config_options=["--enable-cross"])
    return CompileTaskBuilder(spec, registry, runtime, executor)


def reachable(registry, start):
    """Names reachable from start through registered prerequisites."""
    seen = set()
    stack = [start]
    while stack:
        name = stack.pop()
        if name in seen or name not in registry:
            continue
        seen.add(name)
        stack.extend(registry[name].prerequisites)
    return seen


class TestSubgraph:
    """Test the nodes of one combination."""

    def test_copy_task(self, builder, registry):
        """Test copy depends on the lib dir and the built binary."""
        builder.define("x86_64-linux", "3.2.0")

        copy = registry["copy:foo:x86_64-linux:3.2.0"]
        assert copy.prerequisites == ["lib", f"{TMP}/foo.so"]
        assert len(copy.actions) == 1

    def test_binary_depends_on_makefile_and_sources(self, builder, registry):
        """Test the binary depends on the Makefile and matched sources only."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry[f"{TMP}/foo.so"].prerequisites == [
            f"{TMP}/Makefile",
            "ext/foo/foo.c",
            "ext/foo/util.c",
        ]

    def test_makefile_depends_on_tmp_dir_and_extconf(self, builder, registry):
        """Test the Makefile depends on its directory and the configure script."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry[f"{TMP}/Makefile"].prerequisites == [TMP, "ext/foo/extconf.rb"]

    def test_directories(self, builder, registry):
        """Test the temp and lib directories are registered."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry.is_defined(TMP)
        assert registry.is_defined("lib")

    def test_empty_sources_are_allowed(self, registry, runtime, executor, project):
        """Test a pattern matching nothing still defines the binary."""
        spec = ExtensionSpec(name="foo", source_pattern="*.cpp")
        CompileTaskBuilder(spec, registry, runtime, executor).define("x86_64-linux", "3.2.0")

        assert registry[f"{TMP}/foo.so"].prerequisites == [f"{TMP}/Makefile"]

    def test_cleanup_intents(self, builder, registry):
        """Test clean and clobber paths."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry.clean_paths == [TMP]
        assert registry.clobber_paths == ["lib/foo.so", "tmp"]

    def test_umbrella_tasks_described(self, builder, registry):
        """Test global and per-extension umbrellas exist with descriptions."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry["compile"].comment == "Compile all the extensions"
        assert registry["compile:foo"].comment == "Compile foo"
        assert registry["compile:foo:x86_64-linux"].prerequisites == ["copy:foo:x86_64-linux:3.2.0"]
        assert registry["compile:x86_64-linux"].prerequisites == ["compile:foo:x86_64-linux"]

    def test_define_twice_is_idempotent(self, builder, registry):
        """Test a second definition changes neither nodes nor edges."""
        builder.define("x86_64-linux", "3.2.0")
        nodes = set(registry)
        edges = registry.edges()

        builder.define("x86_64-linux", "3.2.0")

        assert set(registry) == nodes
        assert registry.edges() == edges
        assert all(len(registry[name].actions) <= 1 for name in registry)


class TestHostGate:
    """Test only the host platform is chained into 'compile'."""

    def test_host_platform_is_chained(self, builder, registry):
        """Test the host combination reaches 'compile'."""
        builder.define("x86_64-linux", "3.2.0")

        assert registry["compile"].prerequisites == ["compile:x86_64-linux"]
        assert registry["compile:foo"].prerequisites == ["compile:foo:x86_64-linux"]
        assert registry["lib/foo.so"].prerequisites == ["copy:foo:x86_64-linux:3.2.0"]
        assert "copy:foo:x86_64-linux:3.2.0" in reachable(registry, "compile")

    def test_other_platform_is_inert(self, builder, registry):
        """Test a non-host combination is only reachable explicitly."""
        builder.define("i386-mingw32", "3.2.0")

        assert registry["compile"].prerequisites == []
        assert registry["compile:foo"].prerequisites == []
        assert not registry.is_defined("lib/foo.so")
        assert "copy:foo:i386-mingw32:3.2.0" not in reachable(registry, "compile")
        assert "copy:foo:i386-mingw32:3.2.0" in reachable(registry, "compile:i386-mingw32")

    def test_both_platforms(self, builder, registry):
        """Test host and cross combinations side by side."""
        builder.define("x86_64-linux", "3.2.0")
        builder.define("i386-mingw32", "3.2.0")

        compile_reach = reachable(registry, "compile")
        assert "copy:foo:x86_64-linux:3.2.0" in compile_reach
        assert "copy:foo:i386-mingw32:3.2.0" not in compile_reach


class TestConfigureArgs:
    """Test the configure command line."""

    def test_host_build(self, builder, registry, project):
        """Test a host Makefile gets no cross flags."""
        builder.define("x86_64-linux", "3.2.0")

        args = builder.configure_args(registry[f"{TMP}/Makefile"], TMP)

        extconf = str((project / "ext" / "foo" / "extconf.rb").resolve())
        assert args == ["-I.", extconf, "--with-bar"]

    def test_fake_rb_adds_require(self, builder, registry):
        """Test fake.rb as prerequisite adds -rfake before the script."""
        builder.define("x86_64-linux", "3.2.0")
        makefile = registry[f"{TMP}/Makefile"]
        makefile.enhance([f"{TMP}/fake.rb"])

        args = builder.configure_args(makefile, TMP)

        assert args[:2] == ["-I.", "-rfake"]
        assert "--enable-cross" not in args

    def test_rbconfig_adds_cross_options(self, builder, registry):
        """Test rbconfig.rb as prerequisite appends cross options."""
        builder.define("x86_64-linux", "3.2.0")
        makefile = registry[f"{TMP}/Makefile"]
        makefile.enhance([f"{TMP}/fake.rb", f"{TMP}/rbconfig.rb"])

        args = builder.configure_args(makefile, TMP)

        assert args[-2:] == ["--with-bar", "--enable-cross"]
        assert "-rfake" in args


class TestExecution:
    """Test invoking the compile graph."""

    def test_compile_produces_lib_binary(self, builder, registry, executor, project):
        """Test 'compile' configures, builds and copies into lib."""
        builder.define("x86_64-linux", "3.2.0")

        registry.invoke("compile")

        assert (project / "lib" / "foo.so").read_text() == "ELF"
        executor.run_configure.assert_called_once()
        cwd, args = executor.run_configure.call_args[0]
        assert Path(cwd) == project / TMP
        assert "-rfake" not in args
        executor.run_make.assert_called_once_with(project / TMP)

    def test_copy_fails_when_binary_missing(self, builder, registry):
        """Test the copy action propagates the missing source."""
        builder.define("x86_64-linux", "3.2.0")
        (registry.base_dir / "lib").mkdir()

        with pytest.raises(FileNotFoundError):
            registry["copy:foo:x86_64-linux:3.2.0"].execute()

    def test_build_failure_propagates(self, builder, registry, executor, project):
        """Test a failing configure aborts before make and copy."""
        from rbforge.build.command_executor import BuildActionError

        executor.run_configure.side_effect = BuildActionError("extconf failed")
        builder.define("x86_64-linux", "3.2.0")

        with pytest.raises(BuildActionError, match="extconf failed"):
            registry.invoke("compile")

        executor.run_make.assert_not_called()
        assert not (project / "lib" / "foo.so").exists()
