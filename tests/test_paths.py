"""Tests for path resolution and allowlist matching"""

import os

import pytest

from toolgate.errors import ErrorCode
from toolgate.permission.paths import AllowlistMatcher, PathResolver, build_allowed_entries


@pytest.fixture
def base(tmp_path):
    root = tmp_path / "base"
    root.mkdir()
    return root


@pytest.fixture
def resolver(base):
    return PathResolver(base)


def canonical(path) -> str:
    return os.path.realpath(str(path))


class TestPathResolver:
    """Test PathResolver.resolve"""

    def test_existing_file_resolves_to_canonical_path(self, base, resolver):
        (base / "notes.txt").write_text("hi")
        result = resolver.resolve("notes.txt")
        assert result.ok
        assert result.value == canonical(base / "notes.txt")

    def test_new_file_resolves_through_parent(self, base, resolver):
        (base / "docs").mkdir()
        result = resolver.resolve("docs/new.md")
        assert result.ok
        assert result.value == os.path.join(canonical(base / "docs"), "new.md")

    def test_missing_parent_is_rebased_on_canonical_base(self, base, resolver):
        result = resolver.resolve("a/b/c.txt")
        assert result.ok
        assert result.value == os.path.join(canonical(base), "a", "b", "c.txt")

    def test_dot_resolves_to_base(self, base, resolver):
        result = resolver.resolve(".")
        assert result.ok
        assert result.value == canonical(base)

    @pytest.mark.parametrize("requested", ["", "/etc/passwd", "../outside.txt", "docs/../../x", "a/.."])
    def test_rejects_unsafe_strings(self, resolver, requested):
        result = resolver.resolve(requested)
        assert not result.ok
        assert result.code == ErrorCode.DENIED_PATH_ALLOWLIST.value

    def test_rejects_non_string(self, resolver):
        result = resolver.resolve(None)
        assert not result.ok
        assert result.code == ErrorCode.DENIED_PATH_ALLOWLIST.value

    def test_denial_names_the_path(self, resolver):
        result = resolver.resolve("../secret")
        assert "../secret" in result.error.message
        assert result.error.details == {"path": "../secret"}

    def test_double_dot_inside_a_name_is_fine(self, base, resolver):
        (base / "..hidden").write_text("x")
        result = resolver.resolve("..hidden")
        assert result.ok

    def test_symlinked_directory_escape_is_denied(self, tmp_path, base, resolver):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("secret")
        os.symlink(outside, base / "link")

        assert not resolver.resolve("link/secret.txt").ok
        assert not resolver.resolve("link/new.txt").ok

    def test_missing_path_under_symlinked_directory_is_denied(self, tmp_path, base, resolver):
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, base / "link")

        result = resolver.resolve("link/new/deeper/file.txt")
        assert not result.ok
        assert result.code == ErrorCode.DENIED_PATH_ALLOWLIST.value

    def test_dangling_symlink_escape_is_denied(self, tmp_path, base, resolver):
        os.symlink(tmp_path / "not-yet", base / "dangling")

        assert not resolver.resolve("dangling").ok
        assert not resolver.resolve("dangling/file.txt").ok

    def test_missing_path_under_internal_symlink_is_canonical(self, base, resolver):
        (base / "real").mkdir()
        os.symlink(base / "real", base / "alias")

        result = resolver.resolve("alias/new/file.txt")
        assert result.ok
        assert result.value == os.path.join(canonical(base / "real"), "new", "file.txt")

    def test_symlinked_file_escape_is_denied(self, tmp_path, base, resolver):
        target = tmp_path / "target.txt"
        target.write_text("secret")
        os.symlink(target, base / "alias.txt")

        assert not resolver.resolve("alias.txt").ok

    def test_symlink_inside_base_is_followed(self, base, resolver):
        (base / "real.txt").write_text("x")
        os.symlink(base / "real.txt", base / "alias.txt")

        result = resolver.resolve("alias.txt")
        assert result.ok
        assert result.value == canonical(base / "real.txt")


class TestAllowedEntries:
    """Test build_allowed_entries"""

    def test_directory_and_file_entries(self, base, resolver):
        (base / "sub").mkdir()
        (base / "file.txt").write_text("x")
        entries = build_allowed_entries(resolver, ["./sub", "./file.txt", "./later/"])

        by_path = {e.canonical_path: e.is_directory for e in entries}
        assert by_path[canonical(base / "sub")] is True
        assert by_path[canonical(base / "file.txt")] is False
        assert by_path[os.path.join(canonical(base), "later")] is True

    def test_invalid_entries_are_dropped(self, resolver):
        entries = build_allowed_entries(resolver, ["/etc", "../up", ""])
        assert entries == ()


class TestAllowlistMatcher:
    """Test AllowlistMatcher.is_allowed"""

    def test_empty_allowlist_denies_everything(self, base, resolver):
        (base / "a.txt").write_text("x")
        matcher = AllowlistMatcher.from_policy(resolver, [])
        assert not matcher.is_allowed(canonical(base / "a.txt"))
        assert not matcher.is_allowed(canonical(base), "list")

    def test_directory_entry_matches_by_prefix_only_on_separator(self, base, resolver):
        (base / "sub").mkdir()
        (base / "sub" / "inner.txt").write_text("x")
        (base / "subother.txt").write_text("x")
        matcher = AllowlistMatcher.from_policy(resolver, ["./sub"])

        assert matcher.is_allowed(canonical(base / "sub"))
        assert matcher.is_allowed(canonical(base / "sub" / "inner.txt"))
        assert not matcher.is_allowed(canonical(base / "subother.txt"))

    def test_file_entry_matches_exactly(self, base, resolver):
        (base / "allowed.txt").write_text("x")
        (base / "allowed.txt.bak").write_text("x")
        matcher = AllowlistMatcher.from_policy(resolver, ["./allowed.txt"])

        assert matcher.is_allowed(canonical(base / "allowed.txt"))
        assert not matcher.is_allowed(canonical(base / "allowed.txt.bak"))

    @pytest.mark.parametrize("requested", [".git/config", ".GIT/config", ".Env", "pkg/node_modules/x.js"])
    def test_blocked_segments_win_over_policy(self, base, resolver, requested):
        (base / ".git").mkdir()
        (base / ".git" / "config").write_text("[core]")
        matcher = AllowlistMatcher.from_policy(resolver, ["."])

        resolved = resolver.resolve(requested)
        assert resolved.ok
        assert not matcher.is_allowed(resolved.value)

    def test_whole_base_entry_allows_ordinary_files(self, base, resolver):
        (base / "readme.md").write_text("x")
        matcher = AllowlistMatcher.from_policy(resolver, ["."])
        assert matcher.is_allowed(canonical(base / "readme.md"))

    def test_case_folding_is_a_flag(self, base, resolver):
        (base / "Docs").mkdir()
        target = resolver.resolve("docs/readme.md").value

        strict = AllowlistMatcher.from_policy(resolver, ["./Docs"], case_insensitive=False)
        folded = AllowlistMatcher.from_policy(resolver, ["./Docs"], case_insensitive=True)
        assert not strict.is_allowed(target)
        assert folded.is_allowed(target)

    def test_path_outside_base_is_never_allowed(self, base, resolver):
        matcher = AllowlistMatcher.from_policy(resolver, ["."])
        assert not matcher.is_allowed("/etc/passwd")
        assert not matcher.is_allowed("")
