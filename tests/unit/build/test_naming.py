"""Unit tests for artifact naming."""

import pytest

from rbforge.build import naming


class TestBinaryExtension:
    """Test shared library extension selection."""

    @pytest.mark.parametrize("platform", [
        "x86_64-darwin",
        "arm64-darwin22",
        "universal-darwin9.0",
    ])
    def test_darwin_uses_bundle(self, platform):
        """Test darwin platforms get .bundle."""
        assert naming.binary_extension(platform, "dylib") == "bundle"

    @pytest.mark.parametrize("platform", [
        "x86_64-linux",
        "i386-mingw32",
        "x64-mingw-ucrt",
        "i386-mswin32",
    ])
    def test_linux_and_windows_use_so(self, platform):
        """Test linux, mingw and mswin platforms get .so."""
        assert naming.binary_extension(platform, "bundle") == "so"

    def test_unknown_platform_uses_host_extension(self):
        """Test unrecognized platforms fall back to the host DLEXT."""
        assert naming.binary_extension("sparc-solaris2.10", "dll") == "dll"
        assert naming.binary_extension("java", "jar") == "jar"


class TestPaths:
    """Test path derivation."""

    def test_tmp_path(self):
        """Test temporary path layout."""
        path = naming.tmp_path("tmp", "x86_64-linux", "foo", "3.2.0")
        assert path == "tmp/x86_64-linux/foo/3.2.0"

    def test_binary(self):
        """Test binary file name."""
        assert naming.binary("foo", "x86_64-linux", "so") == "foo.so"
        assert naming.binary("foo", "arm64-darwin", "so") == "foo.bundle"

    def test_lib_path(self):
        """Test final library path."""
        assert naming.lib_path("lib", "foo", "i386-mingw32", "bundle") == "lib/foo.so"
        assert naming.lib_path("lib/foo", "foo_ext", "x86_64-linux", "so") == "lib/foo/foo_ext.so"


class TestMakeProgram:
    """Test make flavour selection."""

    def test_make_on_unix(self):
        """Test make is used on non-mswin hosts."""
        assert naming.make_program("x86_64-linux") == "make"
        assert naming.make_program("i386-mingw32") == "make"

    def test_nmake_on_mswin(self):
        """Test nmake is used on mswin hosts."""
        assert naming.make_program("i386-mswin32") == "nmake"
