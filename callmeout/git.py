"""
Git diff collection for analysis runs.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

DIFF_HEADER = "diff --git "
DIFF_CONTEXT_LINES = 5

_HEADER_RE = re.compile(r"^diff --git a/.+ b/(.+)$")


class GitError(RuntimeError):
    """Raised when git cannot produce a diff."""


def parse_files_from_diff(diff: str) -> list[str]:
    """
    List the post-change path of every file header in a unified diff.

    Paths keep the order in which their headers appear and are not
    de-duplicated.
    """
    files: list[str] = []
    for line in diff.split("\n"):
        if not line.startswith(DIFF_HEADER):
            continue
        match = _HEADER_RE.match(line.rstrip("\r"))
        if match:
            files.append(match.group(1))
    return files


async def _git(repo_root: Path, *args: str) -> tuple[int, str, str]:
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(repo_root),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return (
        process.returncode or 0,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


async def has_parent_commit(repo_root: Path) -> bool:
    try:
        returncode, _, _ = await _git(repo_root, "rev-parse", "--verify", "--quiet", "HEAD~1")
    except OSError:
        return False
    return returncode == 0


async def collect_diff(repo_root: Path) -> str:
    """
    Diff the working tree against HEAD, falling back to the last commit.

    Returns "" when there is nothing to analyze.
    """
    context = f"--unified={DIFF_CONTEXT_LINES}"
    try:
        returncode, stdout, stderr = await _git(repo_root, "diff", "HEAD", context)
    except OSError as exc:
        raise GitError(f"git diff failed: {exc}") from exc

    if returncode != 0 and not stdout:
        raise GitError(f"git diff failed: {stderr.strip()}")
    if stdout.strip():
        return stdout

    # Clean working tree: explain the most recent commit instead.
    if not await has_parent_commit(repo_root):
        logger.debug("No parent commit in %s, nothing to diff", repo_root)
        return ""
    _, stdout, _ = await _git(repo_root, "diff", "HEAD~1", "HEAD", context)
    return stdout
