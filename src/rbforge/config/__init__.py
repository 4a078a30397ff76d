"""Configuration parsing modules for rbforge."""

from .cross_config import CrossConfig, CrossConfigError
from .extension_spec import ExtensionSpec
from .project_config import ProjectConfig, ProjectConfigError
from .runtime import RubyRuntime

__all__ = [
    "CrossConfig",
    "CrossConfigError",
    "ExtensionSpec",
    "ProjectConfig",
    "ProjectConfigError",
    "RubyRuntime",
]
