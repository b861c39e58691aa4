"""Unit tests for manifest version extraction."""

import pytest

from app.errors import ManifestNotFoundError, ManifestVersionError
from app.pipeline.versioning import derive_tag, extract_version, read_manifest_version, version_field


class TestExtractVersion:
    def test_quoted_version(self):
        assert extract_version('version = "1.2.3"') == "1.2.3"

    def test_first_matching_line_wins(self):
        text = '[package]\nname = "widget"\nversion = "0.4.0"\n[workspace]\nversion = "9.9.9"\n'
        assert extract_version(text) == "0.4.0"

    def test_inline_dependency_version_ignored(self):
        text = '[dependencies]\nserde = { version = "1.0" }\n[package]\nversion = "2.0.1"\n'
        assert extract_version(text) == "2.0.1"

    def test_prefix_match_includes_longer_keys(self):
        assert extract_version('versioning = "calver"\nversion = "1.0.0"') == "calver"

    def test_indented_line_does_not_match(self):
        with pytest.raises(ManifestVersionError):
            extract_version('  version = "1.0.0"')

    def test_all_quotes_stripped(self):
        assert extract_version('version = "1.0.0-"beta""') == "1.0.0-beta"

    def test_unquoted_token(self):
        assert extract_version("version = 3.1.4") == "3.1.4"

    def test_third_token_only(self):
        assert extract_version('version = "1.2.3" # bumped') == "1.2.3"

    def test_no_spaces_around_equals(self):
        with pytest.raises(ManifestVersionError):
            extract_version('version="1.2.3"')

    def test_missing_version_line(self):
        with pytest.raises(ManifestVersionError) as info:
            extract_version('[package]\nname = "widget"\n')
        assert info.value.code == "MANIFEST_VERSION_MISSING"

    def test_empty_quoted_version(self):
        with pytest.raises(ManifestVersionError):
            extract_version('version = ""')


class TestVersionField:
    def test_short_line_gives_empty_field(self):
        assert version_field('version="1.2.3"') == ""

    def test_two_tokens_give_empty_field(self):
        assert version_field('version =1.2.3') == ""

    def test_missing_line_still_raises(self):
        with pytest.raises(ManifestVersionError):
            version_field('[package]\nname = "widget"\n')


class TestReadManifestVersion:
    def test_reads_file(self, crate_dir):
        assert read_manifest_version(crate_dir / "Cargo.toml") == "1.2.3"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestNotFoundError) as info:
            read_manifest_version(tmp_path / "Cargo.toml")
        assert "Cargo.toml" in info.value.message

    def test_optional_version_tolerates_short_line(self, tmp_path):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text('[package]\nversion="1.2.3"\n', encoding="utf-8")
        assert read_manifest_version(manifest, required=False) == ""
        with pytest.raises(ManifestVersionError):
            read_manifest_version(manifest)


class TestDeriveTag:
    def test_tag_is_bare_version(self):
        assert derive_tag("1.2.3") == "1.2.3"
