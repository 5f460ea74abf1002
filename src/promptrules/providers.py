"""Context-data providers for version-control and filesystem facts.

Providers are allowed to raise; the context engine converts any failure
into default context values.
"""

import asyncio
import heapq
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_DIRS = frozenset(
    {".git", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"}
)


@dataclass
class VcsFacts:
    """Version-control state of the working tree."""

    branch: str | None = None
    status: str | None = None
    has_uncommitted_changes: bool = False
    has_pending_push: bool = False


@dataclass
class FileFacts:
    """Recently modified files under the working directory."""

    working_directory: str | None = None
    recent_files: list[str] = field(default_factory=list)
    file_types: list[str] = field(default_factory=list)


class VcsFactSource(ABC):
    """Abstract source of version-control facts."""

    @abstractmethod
    async def collect(self) -> VcsFacts:
        """Collect version-control facts.

        Returns:
            VcsFacts for the working tree

        Raises:
            Exception: If the working tree cannot be inspected
        """
        pass


class FilesystemFactSource(ABC):
    """Abstract source of filesystem facts."""

    @abstractmethod
    async def collect(self) -> FileFacts:
        """Collect filesystem facts.

        Returns:
            FileFacts for the working directory

        Raises:
            Exception: If the directory cannot be scanned
        """
        pass


class GitCommandError(RuntimeError):
    """Raised when a git invocation exits with a non-zero status."""


class GitFactSource(VcsFactSource):
    """Collect branch and dirty/unpushed state by invoking ``git``."""

    def __init__(self, cwd: str | None = None, git_executable: str = "git") -> None:
        self.cwd = cwd
        self.git_executable = git_executable

    async def _run(self, *args: str) -> str:
        process = await asyncio.create_subprocess_exec(
            self.git_executable,
            *args,
            cwd=self.cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise GitCommandError(
                f"git {' '.join(args)} failed ({process.returncode}): "
                f"{stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode(errors="replace")

    async def collect(self) -> VcsFacts:
        branch = (await self._run("rev-parse", "--abbrev-ref", "HEAD")).strip()
        status = await self._run("status", "--porcelain")

        try:
            ahead = await self._run("rev-list", "--count", "@{upstream}..HEAD")
            has_pending_push = int(ahead.strip() or 0) > 0
        except (GitCommandError, ValueError) as e:
            # Branch has no upstream
            logger.debug("No upstream for branch %s: %s", branch, e)
            has_pending_push = False

        return VcsFacts(
            branch=branch,
            status=status,
            has_uncommitted_changes=bool(status.strip()),
            has_pending_push=has_pending_push,
        )


class RecentFilesFactSource(FilesystemFactSource):
    """Find the most recently modified files below a root directory."""

    def __init__(
        self,
        root: str | None = None,
        limit: int = 10,
        excluded_dirs: frozenset[str] = DEFAULT_EXCLUDED_DIRS,
    ) -> None:
        self.root = root
        self.limit = limit
        self.excluded_dirs = excluded_dirs

    def _scan(self, root: str) -> list[str]:
        candidates: list[tuple[float, str]] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if d not in self.excluded_dirs]
            for name in filenames:
                full_path = os.path.join(dirpath, name)
                try:
                    mtime = os.stat(full_path).st_mtime
                except OSError:
                    continue
                candidates.append((mtime, os.path.relpath(full_path, root)))

        newest = heapq.nlargest(self.limit, candidates)
        return [path for _, path in newest]

    async def collect(self) -> FileFacts:
        root = self.root or os.getcwd()
        recent_files = await asyncio.to_thread(self._scan, root)

        file_types: list[str] = []
        for path in recent_files:
            suffix = Path(path).suffix
            if suffix and suffix not in file_types:
                file_types.append(suffix)

        return FileFacts(working_directory=root, recent_files=recent_files, file_types=file_types)
