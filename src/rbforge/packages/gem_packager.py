"""Gem Packager.

This module turns a gem specification into tasks that assemble a .gem
archive: a plain tar file holding the gzip'd YAML metadata and a gzip'd
tarball of the specification's files.

Design:
    - define() only registers tasks; nothing is written until the archive
      task runs
    - The archive task depends on every file it packs, so binaries are
      built and copied before packaging
    - Shows per-file progress with tqdm when enabled
"""

import gzip
import io
import logging
import posixpath
import tarfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from tqdm import tqdm

from .gem_spec import GemSpecification

if TYPE_CHECKING:
    from ..build.tasks import Task, TaskRegistry

logger = logging.getLogger(__name__)


class GemPackageError(Exception):
    """Raised when a gem archive cannot be assembled."""
    pass


@dataclass(frozen=True)
class GemPackage:
    """Where a gem archive task writes its output."""

    package_dir: str
    gem_file: str

    @property
    def path(self) -> str:
        return posixpath.join(self.package_dir, self.gem_file)


class GemPackager:
    """Registers the tasks that build .gem archives.

    Example usage:
        packager = GemPackager(registry)
        package = packager.define(spec)
        registry.invoke(package.path)  # writes pkg/foo-1.0.0-x86-mingw32.gem
    """

    def __init__(
        self,
        registry: "TaskRegistry",
        package_dir: str = "pkg",
        show_progress: bool = False
    ):
        """Initialize gem packager.

        Args:
            registry: Task registry to define archive tasks in
            package_dir: Directory receiving the archives
            show_progress: Whether to show a progress bar while packing
        """
        self.registry = registry
        self.package_dir = package_dir
        self.show_progress = show_progress

    def define(self, spec: GemSpecification) -> GemPackage:
        """Register the archive task for a specification.

        Args:
            spec: Specification to package; kept as-is by the archive task

        Returns:
            The package descriptor naming the archive
        """
        package = GemPackage(self.package_dir, spec.file_name)

        def build_gem(task: "Task") -> None:
            self.build(spec, package)

        self.registry.directory(self.package_dir)
        self.registry.file(package.path, [self.package_dir] + list(spec.files), build_gem)

        if not self.registry.is_defined("gem"):
            self.registry.task("gem")
            self.registry.describe("gem", "Build the gem files")
        self.registry.task("gem", [package.path])
        self.registry.task("package", ["gem"])

        return package

    def build(self, spec: GemSpecification, package: GemPackage) -> Path:
        """Write the .gem archive.

        Args:
            spec: Specification whose files are packed
            package: Archive location

        Returns:
            Path to the written archive

        Raises:
            GemPackageError: If a listed file does not exist
        """
        gem_path = self.registry.path(package.path)
        gem_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Packaging {package.gem_file} ({len(spec.files)} files)")

        metadata = gzip.compress(spec.to_yaml().encode("utf-8"))
        data = self._pack_files(spec)

        with tarfile.open(gem_path, "w") as gem:
            self._add_bytes(gem, "metadata.gz", metadata)
            self._add_bytes(gem, "data.tar.gz", data)

        return gem_path

    def _pack_files(self, spec: GemSpecification) -> bytes:
        buffer = io.BytesIO()

        progress_bar = None
        if self.show_progress and spec.files:
            progress_bar = tqdm(
                total=len(spec.files),
                unit="file",
                desc=f"Packaging {spec.full_name}",
            )

        try:
            with tarfile.open(fileobj=buffer, mode="w:gz") as data:
                for name in spec.files:
                    path = self.registry.path(name)
                    if not path.is_file():
                        raise GemPackageError(
                            f"File listed in {spec.full_name} not found: {name}"
                        )
                    data.add(str(path), arcname=name)
                    if progress_bar:
                        progress_bar.update(1)
        finally:
            if progress_bar:
                progress_bar.close()

        return buffer.getvalue()

    @staticmethod
    def _add_bytes(archive: tarfile.TarFile, name: str, payload: bytes) -> None:
        info = tarfile.TarInfo(name)
        info.size = len(payload)
        info.mtime = int(time.time())
        info.mode = 0o444
        archive.addfile(info, io.BytesIO(payload))
