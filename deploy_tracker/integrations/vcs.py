"""Local git working copy operations through the ``git`` binary."""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


class VCSError(Exception):
    """A git command failed. The message is the raw process output."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode


class GitRepository:
    """Runs git commands against local working copies."""

    def __init__(self, git_binary: str = "git") -> None:
        self.git_binary = git_binary

    async def _run(self, path: str | Path, *args: str) -> str:
        repo_path = Path(path).expanduser()
        if not str(path).strip():
            raise VCSError("Repository path is not configured")

        command = [self.git_binary, "-C", str(repo_path), *args]
        logger.debug(f"Running git {' '.join(args)} in {repo_path}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise VCSError(str(e), command) from e

        output_bytes, _ = await process.communicate()
        output = output_bytes.decode("utf-8", errors="replace").strip()

        if process.returncode != 0:
            raise VCSError(
                output or f"git {args[0]} failed (exit {process.returncode})",
                command,
                process.returncode,
            )
        return output

    async def checkout(self, path: str | Path, branch: str, create: bool = False) -> None:
        """Check out ``branch``; with ``create`` it is (re)created at HEAD."""
        if create:
            await self._run(path, "checkout", "-B", branch)
        else:
            await self._run(path, "checkout", branch)

    async def create_branch(self, path: str | Path, branch: str) -> None:
        """Create and check out a new branch, failing if it exists."""
        await self._run(path, "checkout", "-b", branch)
        logger.info(f"Created local branch {branch} in {path}")

    async def pull(self, path: str | Path, branch: str) -> None:
        """Pull ``branch`` from origin into the current branch."""
        await self._run(path, "pull", "origin", branch)

    async def commit(self, path: str | Path, message: str, paths: Sequence[str]) -> None:
        """Stage ``paths`` and commit them."""
        await self._run(path, "add", "--", *paths)
        await self._run(path, "commit", "-m", message)

    async def push(self, path: str | Path, branch: str) -> None:
        """Push ``branch`` to origin and set its upstream."""
        await self._run(path, "push", "-u", "origin", branch)
        logger.info(f"Pushed {branch} from {path}")
