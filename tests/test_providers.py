"""Tests for the version-control and filesystem fact sources."""

import os
import shutil

import pytest

from promptrules.providers import GitCommandError, GitFactSource, RecentFilesFactSource


def _touch(path, mtime):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x")
    os.utime(path, (mtime, mtime))


@pytest.mark.asyncio
async def test_recent_files_newest_first(tmp_path):
    """Test that the newest files are returned, newest first."""
    _touch(tmp_path / "old.md", 1_000_000)
    _touch(tmp_path / "src" / "app.py", 3_000_000)
    _touch(tmp_path / "src" / "util.py", 2_000_000)

    facts = await RecentFilesFactSource(root=str(tmp_path), limit=2).collect()

    assert facts.working_directory == str(tmp_path)
    assert facts.recent_files == [
        os.path.join("src", "app.py"),
        os.path.join("src", "util.py"),
    ]
    assert facts.file_types == [".py"]


@pytest.mark.asyncio
async def test_recent_files_skips_excluded_dirs(tmp_path):
    """Test that VCS and cache directories are not scanned."""
    _touch(tmp_path / ".git" / "HEAD", 9_000_000)
    _touch(tmp_path / "node_modules" / "lib.js", 9_000_000)
    _touch(tmp_path / "notes.md", 1_000_000)

    facts = await RecentFilesFactSource(root=str(tmp_path)).collect()

    assert facts.recent_files == ["notes.md"]
    assert facts.file_types == [".md"]


@pytest.mark.asyncio
async def test_recent_files_unique_suffixes(tmp_path):
    _touch(tmp_path / "a.py", 3_000_000)
    _touch(tmp_path / "b.md", 2_000_000)
    _touch(tmp_path / "c.py", 1_000_000)
    _touch(tmp_path / "Makefile", 500_000)

    facts = await RecentFilesFactSource(root=str(tmp_path)).collect()

    assert facts.file_types == [".py", ".md"]
    assert len(facts.recent_files) == 4


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
async def test_git_outside_repository_raises(tmp_path):
    """Test that git failures surface as GitCommandError."""
    source = GitFactSource(cwd=str(tmp_path))
    with pytest.raises(GitCommandError):
        await source.collect()


@pytest.mark.asyncio
async def test_git_missing_executable_raises(tmp_path):
    source = GitFactSource(cwd=str(tmp_path), git_executable="definitely-not-git-xyz")
    with pytest.raises(FileNotFoundError):
        await source.collect()


@pytest.mark.asyncio
async def test_git_facts_from_stubbed_commands(monkeypatch):
    """Test parsing of git output."""
    outputs = {
        ("rev-parse", "--abbrev-ref", "HEAD"): "feature/login\n",
        ("status", "--porcelain"): " M src/app.py\n",
        ("rev-list", "--count", "@{upstream}..HEAD"): "2\n",
    }

    async def fake_run(self, *args):
        return outputs[args]

    monkeypatch.setattr(GitFactSource, "_run", fake_run)
    facts = await GitFactSource().collect()

    assert facts.branch == "feature/login"
    assert facts.has_uncommitted_changes is True
    assert facts.has_pending_push is True


@pytest.mark.asyncio
async def test_git_without_upstream_has_no_pending_push(monkeypatch):
    async def fake_run(self, *args):
        if args[0] == "rev-list":
            raise GitCommandError("no upstream configured")
        if args[0] == "status":
            return ""
        return "main\n"

    monkeypatch.setattr(GitFactSource, "_run", fake_run)
    facts = await GitFactSource().collect()

    assert facts.branch == "main"
    assert facts.has_uncommitted_changes is False
    assert facts.has_pending_push is False
