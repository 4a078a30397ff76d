"""Unit tests for GemSpecification."""

import yaml

from rbforge.packages import GENERIC_PLATFORM, GemSpecification


class TestGemSpecification:
    """Test naming and copying of gem specifications."""

    def test_generic_names(self):
        spec = GemSpecification(name="foo", version="1.0.0")

        assert spec.platform == GENERIC_PLATFORM
        assert spec.is_generic
        assert spec.full_name == "foo-1.0.0"
        assert spec.file_name == "foo-1.0.0.gem"

    def test_platform_names(self):
        spec = GemSpecification(name="foo", version="1.0.0", platform="x86-mingw32")

        assert not spec.is_generic
        assert spec.full_name == "foo-1.0.0-x86-mingw32"
        assert spec.file_name == "foo-1.0.0-x86-mingw32.gem"

    def test_copy_is_deep(self):
        """Test list fields of the copy are independent."""
        spec = GemSpecification(
            name="foo",
            version="1.0.0",
            files=["lib/foo.rb"],
            extensions=["ext/foo/extconf.rb"],
        )

        copy = spec.copy()
        copy.files.append("lib/foo.so")
        copy.extensions.clear()
        copy.platform = "x86-mingw32"

        assert spec.files == ["lib/foo.rb"]
        assert spec.extensions == ["ext/foo/extconf.rb"]
        assert spec.platform == "ruby"

    def test_yaml(self):
        """Test the metadata document keeps every field."""
        spec = GemSpecification(
            name="foo",
            version="1.0.0",
            platform="x86-mingw32",
            authors=["Jane Doe"],
            files=["lib/foo.rb", "lib/foo.so"],
            required_ruby_version="~> 3.2.0",
        )

        assert yaml.safe_load(spec.to_yaml()) == spec.to_dict()
        assert spec.to_yaml().startswith("name: foo\n")
