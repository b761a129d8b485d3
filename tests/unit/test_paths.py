"""
Unit tests for request path resolution.
"""

from pathlib import Path, PurePath

import pytest

from simplewebserver.handlers.paths import PathResolver, ResolvedPath


@pytest.fixture
def resolver(web_root: Path) -> PathResolver:
    return PathResolver(web_root)


class TestPathResolver:
    """Tests for PathResolver.resolve()."""

    def test_root_serves_index(self, resolver: PathResolver, web_root: Path):
        """Test that "/" maps to index.html."""
        resolved = resolver.resolve("/")

        assert resolved.relative == PurePath("index.html")
        assert resolved.absolute == web_root / "index.html"

    def test_root_without_index_is_listed(self, tmp_path: Path):
        """Test that "/" maps to the root itself when there's no index."""
        resolved = PathResolver(tmp_path).resolve("/")

        assert resolved == ResolvedPath(relative=PurePath(), absolute=tmp_path.absolute())

    def test_plain_file(self, resolver: PathResolver):
        assert resolver.resolve("/notes.txt").relative == PurePath("notes.txt")

    def test_nested_file(self, resolver: PathResolver):
        assert resolver.resolve("/docs/readme.txt").relative == PurePath("docs", "readme.txt")

    def test_html_fallback(self, resolver: PathResolver):
        """Test that an extensionless missing path falls back to .html."""
        assert resolver.resolve("/about").relative == PurePath("about.html")
        assert resolver.resolve("/docs/guide").relative == PurePath("docs", "guide.html")

    def test_no_fallback_for_existing_entry(self, resolver: PathResolver):
        """Test that an existing directory is not rewritten."""
        assert resolver.resolve("/docs").relative == PurePath("docs")

    def test_no_fallback_with_suffix(self, resolver: PathResolver):
        """Test that a missing path with an extension is left alone."""
        resolved = resolver.resolve("/missing.txt")

        assert resolved.relative == PurePath("missing.txt")
        assert not resolved.exists()

    def test_trailing_slash_and_empty_components(self, resolver: PathResolver):
        """Test that "//" and a trailing "/" collapse."""
        assert resolver.resolve("//docs//readme.txt").relative == PurePath("docs", "readme.txt")
        assert resolver.resolve("/docs/").relative == PurePath("docs")

    def test_dotdot_is_preserved(self, resolver: PathResolver, web_root: Path):
        """Test that ".." is kept for the guard to canonicalize."""
        resolved = resolver.resolve("/../outside.txt")

        assert resolved.relative == PurePath("..", "outside.txt")
        assert resolved.absolute == web_root / ".." / "outside.txt"

    def test_nul_byte(self, resolver: PathResolver):
        """Test that an embedded NUL yields no path."""
        assert resolver.resolve("/index.html\x00.txt") is None

    def test_overlong_name_is_missing(self, resolver: PathResolver):
        """Test that a name the filesystem rejects resolves as missing."""
        resolved = resolver.resolve("/" + "a" * 300)

        assert resolved.relative == PurePath("a" * 300 + ".html")
        assert not resolved.exists()

    def test_unsearchable_directory(self, resolver: PathResolver, web_root: Path):
        """Test that a lookup inside a directory without search permission is missing."""
        locked = web_root / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            resolved = resolver.resolve("/locked/page")

            assert resolved is not None
            assert not resolved.exists()
        finally:
            locked.chmod(0o755)


class TestResolvedPath:
    """Tests for ResolvedPath.exists()."""

    def test_exists(self, web_root: Path):
        assert ResolvedPath(PurePath("index.html"), web_root / "index.html").exists()

    def test_missing(self, web_root: Path):
        assert not ResolvedPath(PurePath("nope"), web_root / "nope").exists()
