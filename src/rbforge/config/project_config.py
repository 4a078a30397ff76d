"""
rbforge.ini configuration parser.

This module parses the project file that declares the gem and its native
extensions, and turns its sections into GemSpecification and ExtensionSpec
objects.
"""

import configparser
import shlex
from pathlib import Path
from typing import Dict, List, Optional

from ..packages.gem_spec import GENERIC_PLATFORM, GemSpecification
from .extension_spec import ExtensionSpec

LIST_FIELDS = {"config_options", "cross_platform", "cross_config_options"}


class ProjectConfigError(Exception):
    """Exception raised for rbforge.ini configuration errors."""

    pass


class ProjectConfig:
    """
    Parser for rbforge.ini project files.

    Example rbforge.ini:
        [rbforge]
        default_tasks = compile

        [gem]
        name = foo
        version = 1.0.0
        files = lib/**/*.rb ext/**/*.c ext/**/*.rb

        [ext]
        tmp_dir = tmp

        [ext:foo]
        cross_compile = yes
        cross_platform = i386-mingw32 x64-mingw32
        config_options = --with-foo-dir=/opt/foo

    Usage:
        config = ProjectConfig(Path("rbforge.ini"))
        gem_spec = config.get_gem_spec()
        for name in config.get_extensions():
            spec = config.get_extension_spec(name, gem_spec)
    """

    REQUIRED_GEM_FIELDS = {"name", "version"}

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with an rbforge.ini file.

        Args:
            ini_path: Path to the rbforge.ini file

        Raises:
            ProjectConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = Path(ini_path)
        self.project_dir = self.ini_path.parent

        if not self.ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {self.ini_path}")

        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {self.ini_path}: {e}") from e

    def get_extensions(self) -> List[str]:
        """
        Get list of all extension names defined in the config.

        Example:
            For [ext:foo], [ext:bar], returns ['foo', 'bar']
        """
        extensions = []
        for section in self.config.sections():
            if section.startswith("ext:"):
                extensions.append(section.split(":", 1)[1])
        return extensions

    def get_extension_config(self, name: str) -> Dict[str, str]:
        """
        Get raw configuration for an extension, merged over the [ext] section.

        Raises:
            ProjectConfigError: If the extension is not declared
        """
        section = f"ext:{name}"

        if section not in self.config:
            available = ", ".join(self.get_extensions())
            raise ProjectConfigError(
                f"Extension '{name}' not found. "
                + f"Available extensions: {available or 'none'}"
            )

        try:
            ext_config = {key: (value or "").strip() for key, value in self.config[section].items()}
            if "ext" in self.config:
                base_config = {key: (value or "").strip() for key, value in self.config["ext"].items()}
                # Extension-specific values override base values
                ext_config = {**base_config, **ext_config}
        except configparser.Error as e:
            raise ProjectConfigError(f"Invalid value in [{section}]: {e}") from e

        return ext_config

    def get_extension_spec(
        self,
        name: str,
        gem_spec: Optional[GemSpecification] = None
    ) -> ExtensionSpec:
        """
        Build the ExtensionSpec of a declared extension.

        Args:
            name: Extension name (the part after 'ext:')
            gem_spec: Gem the extension belongs to

        Raises:
            ProjectConfigError: If a value is invalid
        """
        ext_config = self.get_extension_config(name)
        kwargs = {}

        for key in ("ext_dir", "source_pattern", "lib_dir", "tmp_dir", "config_script", "platform"):
            if ext_config.get(key):
                kwargs[key] = ext_config[key]

        for key in LIST_FIELDS:
            if key in ext_config:
                try:
                    kwargs[key] = shlex.split(ext_config[key])
                except ValueError as e:
                    raise ProjectConfigError(f"Invalid {key} for extension '{name}': {e}") from e

        if "cross_compile" in ext_config:
            kwargs["cross_compile"] = self._parse_bool(name, "cross_compile", ext_config["cross_compile"])

        # a single cross platform stays a plain string
        cross_platform = kwargs.get("cross_platform")
        if cross_platform is not None and len(cross_platform) == 1:
            kwargs["cross_platform"] = cross_platform[0]
        elif cross_platform == []:
            del kwargs["cross_platform"]

        return ExtensionSpec(name=name, gem_spec=gem_spec, **kwargs)

    @staticmethod
    def _parse_bool(name: str, key: str, value: str) -> bool:
        lowered = value.lower()
        if lowered in configparser.ConfigParser.BOOLEAN_STATES:
            return configparser.ConfigParser.BOOLEAN_STATES[lowered]
        raise ProjectConfigError(f"Invalid boolean for {key} in extension '{name}': {value}")

    def has_gem(self) -> bool:
        return "gem" in self.config

    def get_gem_spec(self) -> Optional[GemSpecification]:
        """
        Build the GemSpecification from the [gem] section.

        File patterns are expanded relative to the project directory.

        Returns:
            The specification, or None when there is no [gem] section

        Raises:
            ProjectConfigError: If required fields are missing
        """
        if not self.has_gem():
            return None

        gem_config = {key: (value or "").strip() for key, value in self.config["gem"].items()}

        missing_fields = self.REQUIRED_GEM_FIELDS - {k for k, v in gem_config.items() if v}
        if missing_fields:
            raise ProjectConfigError(
                "[gem] is missing required fields: "
                + f"{', '.join(sorted(missing_fields))}"
            )

        spec = GemSpecification(
            name=gem_config["name"],
            version=gem_config["version"],
            platform=gem_config.get("platform") or GENERIC_PLATFORM,
            summary=gem_config.get("summary", ""),
            authors=self._split_list(gem_config.get("authors", "")),
            files=self._expand_files(gem_config.get("files", "")),
            extensions=self._split_list(gem_config.get("extensions", "")),
            required_ruby_version=gem_config.get("required_ruby_version") or None,
        )
        require_paths = self._split_list(gem_config.get("require_paths", ""))
        if require_paths:
            spec.require_paths = require_paths
        return spec

    def get_default_tasks(self) -> List[str]:
        """
        Tasks to run when none are given on the command line.

        Example:
            If [rbforge] has default_tasks = cross compile, returns ['cross', 'compile']
            Otherwise returns ['compile']
        """
        if "rbforge" in self.config:
            default_tasks = self.config["rbforge"].get("default_tasks", "") or ""
            if default_tasks.strip():
                return default_tasks.split()
        return ["compile"]

    def get_package_dir(self) -> str:
        if "rbforge" in self.config:
            return (self.config["rbforge"].get("package_dir", "") or "").strip() or "pkg"
        return "pkg"

    @staticmethod
    def _split_list(value: str) -> List[str]:
        # Split on newlines and commas, strip whitespace, filter empty
        items = []
        for line in value.split("\n"):
            for item in line.split(","):
                item = item.strip()
                if item:
                    items.append(item)
        return items

    def _expand_files(self, patterns: str) -> List[str]:
        files: List[str] = []
        for pattern in patterns.split():
            for path in sorted(self.project_dir.glob(pattern)):
                if path.is_file():
                    name = path.relative_to(self.project_dir).as_posix()
                    if name not in files:
                        files.append(name)
        return files
