"""Artifact naming for extension builds.

Pure functions deriving the canonical paths of intermediate and final
artifacts. Every path returned here is also a task name in the registry,
so paths are always POSIX-style strings.

Layout:
    <tmp_dir>/<platform>/<name>/<ruby_version>/
        Makefile
        <name>.<dlext>
        fake.rb, rbconfig.rb, mkmf.rb   (cross builds only)
    <lib_dir>/<name>.<dlext>
"""

import posixpath


def tmp_path(tmp_dir: str, platform: str, name: str, ruby_version: str) -> str:
    """Temporary build directory for one (platform, version) combination."""
    return posixpath.join(tmp_dir, platform, name, ruby_version)


def binary_extension(platform: str, host_dlext: str) -> str:
    """Pick the shared library extension for a platform string.

    This is a best-effort match, not a platform database: unknown platforms
    get the host's own extension, which is wrong when cross compiling to a
    platform that is not listed here.

    Args:
        platform: Ruby platform string (e.g., 'x86_64-linux', 'i386-mingw32')
        host_dlext: DLEXT reported by the host Ruby

    Returns:
        Extension without the leading dot
    """
    if "darwin" in platform:
        return "bundle"
    if any(token in platform for token in ("mingw", "mswin", "linux")):
        return "so"
    return host_dlext


def binary(name: str, platform: str, host_dlext: str) -> str:
    """File name of the compiled extension (e.g., 'foo.so')."""
    return f"{name}.{binary_extension(platform, host_dlext)}"


def lib_path(lib_dir: str, name: str, platform: str, host_dlext: str) -> str:
    """Final location of the compiled extension inside the library directory."""
    return posixpath.join(lib_dir, binary(name, platform, host_dlext))


def make_program(host_platform: str) -> str:
    """Make flavour used to run the generated Makefile on this host."""
    return "nmake" if "mswin" in host_platform else "make"
