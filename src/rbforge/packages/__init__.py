"""Gem packaging for rbforge.

This module handles gem specifications and assembling .gem archives for
native (precompiled) gems.
"""

from .gem_packager import GemPackage, GemPackageError, GemPackager
from .gem_spec import GENERIC_PLATFORM, GemSpecification

__all__ = [
    "GemSpecification",
    "GENERIC_PLATFORM",
    "GemPackager",
    "GemPackage",
    "GemPackageError",
]
