"""
Tests for the Package System building blocks.

This test suite covers:
1. Package spec validation and normalisation
2. Name, install path and repository resolution
3. Tree walking (pre-order, exactly once, invalid nodes)
4. Hook execution
5. Git operations
"""

import asyncio
import sys
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pam.config import PamConfig
from pam.package.manifest import (
    PackageSpec,
    ValidationError,
    coerce_package_spec,
    dependencies_of,
    validate_package_spec,
)
from pam.package.paths import (
    expand_source,
    package_name,
    resolve_package,
    resolve_repository,
)
from pam.package.walker import (
    build_registry,
    flatten_package_tree,
    iter_package_tree,
    walk_package_tree,
)


class TestPackageSpecValidation:
    """Test package spec validation."""

    def test_valid_mapping(self):
        """Should accept a mapping with a source."""
        assert validate_package_spec({"source": "mvllow/pam.nvim"})

    def test_valid_dataclass(self):
        """Should accept a PackageSpec."""
        assert validate_package_spec(PackageSpec(source="mvllow/pam.nvim"))

    def test_missing_source(self):
        """Should reject a record without a source."""
        assert not validate_package_spec({"as": "foo"})
        assert not validate_package_spec({})

    def test_empty_or_non_string_source(self):
        """Should reject empty and non-string sources."""
        assert not validate_package_spec({"source": ""})
        assert not validate_package_spec({"source": "   "})
        assert not validate_package_spec({"source": 42})
        assert not validate_package_spec({"source": None})

    def test_bare_values(self):
        """Should reject bare strings and primitives."""
        assert not validate_package_spec("mvllow/pam.nvim")
        assert not validate_package_spec(None)
        assert not validate_package_spec(3)
        assert not validate_package_spec(["mvllow/pam.nvim"])

    def test_not_recursive(self):
        """Should not fail a package because a dependency is invalid."""
        node = {"source": "a/b", "dependencies": [{"nope": True}]}
        assert validate_package_spec(node)


class TestPackageSpecCoercion:
    """Test mapping normalisation."""

    def test_coerce_full_mapping(self):
        """Should map every supported key."""
        hook = MagicMock()
        spec = coerce_package_spec(
            {
                "source": "ThePrimeagen/harpoon",
                "as": "baboon",
                "branch": "harpoon2",
                "dependencies": [{"source": "nvim-lua/plenary.nvim"}],
                "post_checkout": "make",
                "config": hook,
            }
        )

        assert spec.source == "ThePrimeagen/harpoon"
        assert spec.alias == "baboon"
        assert spec.branch == "harpoon2"
        assert spec.dependencies == [{"source": "nvim-lua/plenary.nvim"}]
        assert spec.post_checkout == "make"
        assert spec.configure is hook

    def test_coerce_alias_key(self):
        """Should accept 'alias' as well as 'as'."""
        spec = coerce_package_spec({"source": "a/b", "alias": "c"})
        assert spec.alias == "c"

    def test_coerce_returns_dataclass_unchanged(self):
        """Should return PackageSpec instances as they are."""
        spec = PackageSpec(source="a/b")
        assert coerce_package_spec(spec) is spec

    @pytest.mark.parametrize("alias", ["../escaped", "a/b", "..\\up", "", "  "])
    def test_coerce_dataclass_bad_alias(self, alias):
        """Should check the alias of PackageSpec instances like mappings."""
        with pytest.raises(ValidationError, match="alias|Alias"):
            coerce_package_spec(PackageSpec(source="a/x", alias=alias))

    def test_coerce_dataclass_bad_branch(self):
        """Should reject a non-string branch on PackageSpec instances."""
        with pytest.raises(ValidationError, match="branch"):
            coerce_package_spec(PackageSpec(source="a/x", branch=3))

    def test_coerce_invalid_node(self):
        """Should raise ValidationError for invalid nodes."""
        with pytest.raises(ValidationError, match="source"):
            coerce_package_spec({"branch": "main"})

        with pytest.raises(ValidationError, match="expected a table"):
            coerce_package_spec("a/b")

    def test_coerce_rejects_path_alias(self):
        """Should reject aliases that are not plain directory names."""
        with pytest.raises(ValidationError, match="plain directory name"):
            coerce_package_spec({"source": "a/b", "as": "../escape"})

    def test_dependencies_of(self):
        """Should return children only for records with a list."""
        assert dependencies_of({"source": "a/b"}) == []
        assert dependencies_of({"source": "a/b", "dependencies": "c/d"}) == []
        assert dependencies_of("a/b") == []
        assert dependencies_of(PackageSpec("a/b", dependencies=[{"source": "c/d"}])) == [
            {"source": "c/d"}
        ]


class TestPathResolution:
    """Test package name and path resolution."""

    def test_name_from_shorthand(self):
        """Should use the final path segment."""
        assert package_name("owner/repo") == "repo"

    def test_name_from_alias(self):
        """Should prefer the alias."""
        assert package_name("owner/repo", "foo") == "foo"

    def test_name_strips_trailing_slash(self):
        """Should ignore a trailing slash."""
        assert package_name("owner/repo/") == "repo"
        assert package_name("https://example.com/owner/repo/") == "repo"

    def test_name_without_slash(self):
        """Should use the whole source when it has no slash."""
        assert package_name("repo") == "repo"

    def test_expand_home(self):
        """Should expand a leading ~ only."""
        home = str(Path.home())
        assert expand_source("~/dev/plugin") == home + "/dev/plugin"
        assert expand_source("owner/~repo") == "owner/~repo"
        assert package_name("~/dev/plugin/") == "plugin"

    def test_repository_shorthand(self):
        """Should expand owner/repo against the git host."""
        repository = resolve_repository("owner/repo")
        assert repository.reference == "https://github.com/owner/repo.git"
        assert not repository.is_local

    def test_repository_custom_host(self):
        """Should honor a configured git host."""
        repository = resolve_repository("owner/repo", "https://codeberg.org/")
        assert repository.reference == "https://codeberg.org/owner/repo.git"

    def test_repository_url_verbatim(self):
        """Should keep URLs and scp-like references as they are."""
        assert (
            resolve_repository("https://gitlab.com/a/b").reference
            == "https://gitlab.com/a/b"
        )
        assert (
            resolve_repository("git@github.com:a/b.git").reference
            == "git@github.com:a/b.git"
        )

    def test_repository_local_directory(self):
        """Should treat an existing directory as a local source."""
        with tempfile.TemporaryDirectory() as tmpdir:
            repository = resolve_repository(tmpdir)
            assert repository.is_local
            assert repository.reference == tmpdir

    def test_resolve_package(self):
        """Should place the package under the install root."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config = PamConfig(install_root=Path(tmpdir))
            resolved = resolve_package(PackageSpec("owner/repo", alias="foo"), config)

            assert resolved.name == "foo"
            assert resolved.install_path == Path(tmpdir).absolute() / "foo"
            assert resolved.source == "owner/repo"


class TestTreeWalker:
    """Test package tree traversal."""

    @pytest.fixture
    def tree(self):
        return [
            {"source": "a/x"},
            {
                "source": "b/y",
                "dependencies": [
                    {"source": "c/z", "dependencies": [{"source": "d/w"}]},
                    {"source": "e/v"},
                ],
            },
        ]

    def test_pre_order(self, tree):
        """Should visit parents before their dependencies."""
        sources = [spec.source for spec in flatten_package_tree(tree)]
        assert sources == ["a/x", "b/y", "c/z", "d/w", "e/v"]

    def test_depths(self, tree):
        """Should report nesting depth."""
        depths = [node.depth for node in iter_package_tree(tree)]
        assert depths == [0, 0, 1, 2, 1]

    def test_each_node_once(self, tree):
        """Should call the action exactly once per node."""
        visited = []
        walk_package_tree(tree, lambda node: visited.append(node.node["source"]))
        assert sorted(visited) == sorted(set(visited))
        assert len(visited) == 5

    def test_duplicates_across_branches(self):
        """Should visit duplicate sources independently."""
        tree = [
            {"source": "a/x", "dependencies": [{"source": "lib/common"}]},
            {"source": "b/y", "dependencies": [{"source": "lib/common"}]},
        ]
        sources = [spec.source for spec in flatten_package_tree(tree)]
        assert sources.count("lib/common") == 2

    def test_invalid_node_skipped_locally(self):
        """Should skip an invalid node and keep walking its siblings."""
        tree = [
            {"source": "a/x"},
            {"as": "broken", "dependencies": [{"source": "hidden/dep"}]},
            "not-a-table",
            {"source": "b/y"},
        ]
        nodes = list(iter_package_tree(tree))

        assert [node.valid for node in nodes] == [True, False, False, True]
        assert [spec.source for spec in flatten_package_tree(tree)] == ["a/x", "b/y"]
        assert "source" in nodes[1].error

    def test_parent_and_is_last(self, tree):
        """Should record the enclosing package and sibling position."""
        nodes = list(iter_package_tree(tree))

        assert nodes[2].parent.source == "b/y"
        assert nodes[2].is_last is False
        assert nodes[4].is_last is True
        assert nodes[0].parent is None

    def test_does_not_mutate(self, tree):
        """Should leave the declared tree untouched."""
        before = repr(tree)
        list(iter_package_tree(tree))
        assert repr(tree) == before

    def test_registry(self, tree):
        """Should map alias-or-derived names to specs."""
        tree[0]["as"] = "renamed"
        registry = build_registry(tree)
        assert list(registry) == ["renamed", "y", "z", "w", "v"]

    def test_empty_tree(self):
        """Should handle empty and missing trees."""
        assert flatten_package_tree([]) == []
        assert flatten_package_tree(None) == []


class TestHookExecution:
    """Test lifecycle hook execution."""

    def test_callable_hook(self):
        """Should call a Python hook with no arguments."""
        from pam.package.hooks import HookType, run_hook

        hook = MagicMock()
        result = run_hook(hook, HookType.POST_CHECKOUT, "repo")

        hook.assert_called_once_with()
        assert result.ok

    def test_callable_hook_error_captured(self):
        """Should capture a raising hook instead of propagating."""
        from pam.package.hooks import HookType, run_hook

        def broken():
            raise RuntimeError("boom")

        result = run_hook(broken, HookType.CONFIGURE, "repo")

        assert not result.ok
        assert "boom" in result.error
        assert result.hook_type is HookType.CONFIGURE

    def test_no_hook(self):
        """Should return None when the package has no hook."""
        from pam.package.hooks import HookType, run_hook

        assert run_hook(None, HookType.POST_CHECKOUT, "repo") is None

    def test_async_hook_rejected(self):
        """Should reject coroutine functions as hooks."""
        from pam.package.hooks import HookType, run_hook

        async def hook():
            pass

        result = run_hook(hook, HookType.POST_CHECKOUT, "repo")

        assert not result.ok
        assert "must be synchronous" in result.error

    def test_unbalanced_quote_command(self):
        """Should turn an unparsable command into a HookError."""
        from pam.package.hooks import HookError, HookType, execute_hook

        with pytest.raises(HookError, match="Invalid post_checkout hook command"):
            execute_hook("make 'oops", HookType.POST_CHECKOUT, "repo")

    def test_command_hook_with_env_vars(self):
        """Should run commands in the package dir with pam variables."""
        from pam.package.hooks import HookType, execute_hook

        with tempfile.TemporaryDirectory() as tmpdir:
            package_dir = Path(tmpdir)
            script = (
                "import os, pathlib;"
                f"assert os.environ['PAM_PACKAGE_DIR'] == {str(package_dir)!r};"
                "assert os.environ['PAM_PACKAGE_NAME'] == 'repo';"
                "assert os.environ['PAM_HOOK_TYPE'] == 'post_checkout';"
                "pathlib.Path('built').write_text('ok')"
            )
            execute_hook(
                [sys.executable, "-c", script],
                HookType.POST_CHECKOUT,
                "repo",
                package_dir,
            )

            assert (package_dir / "built").read_text() == "ok"

    def test_command_hook_failure(self):
        """Should raise HookError on a nonzero exit."""
        from pam.package.hooks import HookError, HookType, execute_hook

        with pytest.raises(HookError, match="exit code 3"):
            execute_hook(
                [sys.executable, "-c", "raise SystemExit(3)"],
                HookType.POST_CHECKOUT,
                "repo",
            )

    def test_command_hook_timeout(self):
        """Should raise HookError when a command times out."""
        from pam.package.hooks import HookError, HookType, execute_hook

        with pytest.raises(HookError, match="timed out"):
            execute_hook(
                [sys.executable, "-c", "import time; time.sleep(5)"],
                HookType.POST_CHECKOUT,
                "repo",
                timeout=1,
            )

    def test_unsupported_hook(self):
        """Should reject hooks that are neither callables nor commands."""
        from pam.package.hooks import HookError, HookType, execute_hook

        with pytest.raises(HookError, match="Unsupported"):
            execute_hook(42, HookType.CONFIGURE, "repo")


def _mock_process(returncode=0, output=b""):
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(output, None))
    return process


class TestGitOperations:
    """Test git operations."""

    def test_clone_command(self):
        """Should build a shallow, filtered, single-branch clone."""
        from pam.package.git_ops import build_clone_command

        cmd = build_clone_command("https://github.com/a/b.git", Path("/tmp/b"))
        assert cmd == [
            "git",
            "clone",
            "--depth=1",
            "--filter=blob:none",
            "--single-branch",
            "https://github.com/a/b.git",
            "/tmp/b",
        ]

    def test_clone_command_with_branch(self):
        """Should pin the branch when given."""
        from pam.package.git_ops import build_clone_command

        cmd = build_clone_command("https://github.com/a/b.git", Path("/tmp/b"), "v2")
        assert "--branch=v2" in cmd

    @pytest.mark.asyncio
    async def test_clone_success(self):
        """Should return the result of a successful clone."""
        from pam.package.git_ops import clone_package

        process = _mock_process(0, b"Cloning into '/tmp/b'...\n")
        with patch("asyncio.create_subprocess_exec", return_value=process) as spawn:
            result = await clone_package("https://github.com/a/b.git", Path("/tmp/b"))

        assert result.returncode == 0
        assert spawn.call_args.args[:2] == ("git", "clone")
        assert spawn.call_args.kwargs["env"]["LC_ALL"] == "C"

    @pytest.mark.asyncio
    async def test_clone_failure(self):
        """Should raise GitError on a nonzero exit."""
        from pam.package.git_ops import GitError, clone_package

        process = _mock_process(128, b"fatal: repository not found\n")
        with patch("asyncio.create_subprocess_exec", return_value=process):
            with pytest.raises(GitError, match="repository not found"):
                await clone_package("https://github.com/a/b.git", Path("/tmp/b"))

    @pytest.mark.asyncio
    async def test_git_missing(self):
        """Should raise GitError when git cannot be spawned."""
        from pam.package.git_ops import GitError, pull_package

        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError):
            with pytest.raises(GitError, match="git command not found"):
                await pull_package(Path("/tmp/b"))

    @pytest.mark.asyncio
    async def test_pull_up_to_date(self):
        """Should detect git's already-up-to-date marker."""
        from pam.package.git_ops import pull_package

        for output in (b"Already up to date.\n", b"Already up-to-date.\n"):
            with patch(
                "asyncio.create_subprocess_exec", return_value=_mock_process(0, output)
            ):
                result = await pull_package(Path("/tmp/b"))
            assert result.up_to_date

    @pytest.mark.asyncio
    async def test_pull_updated(self):
        """Should report other successful output as an update."""
        from pam.package.git_ops import pull_package

        output = b"Updating 1a2b3c..4d5e6f\nFast-forward\n README.md | 2 +-\n"
        with patch("asyncio.create_subprocess_exec", return_value=_mock_process(0, output)) as spawn:
            result = await pull_package(Path("/tmp/b"))

        assert not result.up_to_date
        assert spawn.call_args.args == ("git", "-C", "/tmp/b", "pull")

    @pytest.mark.asyncio
    async def test_concurrent_commands(self):
        """Should run several git commands concurrently."""
        from pam.package.git_ops import run_git

        with patch("asyncio.create_subprocess_exec", return_value=_mock_process(0, b"")):
            results = await asyncio.gather(
                run_git(["git", "status"]), run_git(["git", "status"])
            )

        assert [result.returncode for result in results] == [0, 0]
