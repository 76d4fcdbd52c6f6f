"""Thin wrappers around the ``git`` and ``curl`` executables."""

from __future__ import annotations

import asyncio
import shlex
from typing import TYPE_CHECKING

from repo_ingest.config import DEFAULT_BRANCHES
from repo_ingest.exceptions import GitCommandError, GitNotInstalledError, RepositoryNotFoundError
from repo_ingest.limiter import runner
from repo_ingest.logging import logger

if TYPE_CHECKING:
    from repo_ingest.config import CloneConfig

_EXISTING_STATUSES = frozenset({200, 301})


async def _exec(*args: str) -> tuple[int, str, str]:
    """Run a process under the shared runner and capture its output.

    Returns:
        tuple[int, str, str]: return code, decoded stdout and decoded stderr
    """

    async def _run() -> tuple[int, str, str]:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        return (
            proc.returncode or 0,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    return await runner.run(_run)


async def check_git_installed() -> None:
    """Make sure ``git`` can be executed.

    Raises:
        GitNotInstalledError: if ``git --version`` cannot run or fails.
    """
    try:
        returncode, _, _ = await _exec("git", "--version")
    except OSError as e:
        raise GitNotInstalledError from e
    if returncode != 0:
        raise GitNotInstalledError


async def run_command(*args: str) -> tuple[str, str]:
    """Run a git command after checking that git is available.

    Args:
        *args: the full command line, starting with ``git``

    Raises:
        GitCommandError: if the command exits with a non-zero status.

    Returns:
        tuple[str, str]: stdout and stderr of the command
    """
    await check_git_installed()
    command = shlex.join(args)
    returncode, stdout, stderr = await _exec(*args)
    if returncode != 0:
        raise GitCommandError(
            command=command,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            message=f"Command failed: {command}\nError: {stderr.strip()}",
        )
    return stdout, stderr


def _parse_status_line(output: str) -> int | None:
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0].upper().startswith("HTTP/") and parts[1].isdigit():  # noqa: PLR2004
            return int(parts[1])
    return None


async def check_repo_exists(url: str) -> bool:
    """Check a remote repository URL with an HTTP HEAD request.

    Args:
        url (str): the repository URL

    Returns:
        bool: True when the host answers 200 or 301, False otherwise (including
            when the request itself cannot run)
    """
    try:
        returncode, stdout, _ = await _exec("curl", "--silent", "--head", url)
    except OSError as e:
        logger.warning("repository check failed", url=url, error=str(e))
        return False
    if returncode != 0:
        return False
    status = _parse_status_line(stdout)
    logger.debug("repository check", url=url, status=status)
    return status in _EXISTING_STATUSES


async def fetch_remote_branch_list(url: str) -> list[str]:
    """List the branch names of a remote repository.

    Args:
        url (str): the repository URL

    Returns:
        list[str]: the branch names, in ``git ls-remote`` order
    """
    stdout, _ = await run_command("git", "ls-remote", "--heads", url)
    branches: list[str] = []
    for line in stdout.splitlines():
        _, sep, branch = line.partition("refs/heads/")
        if sep and branch.strip():
            branches.append(branch.strip())
    return branches


async def clone_repo(config: CloneConfig) -> None:
    """Clone a remote repository to ``config.local_path``.

    The clone is single-branch and includes submodules. A subpath narrower than
    the root produces a blob-less sparse clone restricted to that subpath. When
    a commit is pinned it is checked out after the clone; otherwise the clone is
    shallow and a non-default branch is passed along.

    Args:
        config (CloneConfig): the clone parameters

    Raises:
        RepositoryNotFoundError: if the repository cannot be reached.
    """
    await runner.run_blocking(config.local_path.parent.mkdir, parents=True, exist_ok=True)

    if not await check_repo_exists(config.url):
        raise RepositoryNotFoundError(url=config.url)

    clone_args = ["git", "clone", "--recurse-submodules", "--single-branch"]
    if config.partial_clone:
        clone_args += ["--filter=blob:none", "--sparse"]
    if not config.commit:
        clone_args.append("--depth=1")
        if config.branch and config.branch.lower() not in DEFAULT_BRANCHES:
            clone_args += ["--branch", config.branch]
    clone_args += [config.url, str(config.local_path)]

    logger.info("cloning repository", url=config.url, branch=config.branch, commit=config.commit)
    await run_command(*clone_args)

    if config.partial_clone:
        await run_command(
            "git",
            "-C",
            str(config.local_path),
            "sparse-checkout",
            "set",
            config.subpath.lstrip("/"),
        )
    if config.commit:
        await run_command("git", "-C", str(config.local_path), "checkout", config.commit)
