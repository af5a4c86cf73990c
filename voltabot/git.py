"""Thin helpers over the git command line."""

from __future__ import annotations

import subprocess
from os import PathLike
from typing import Union

PathType = Union[str, "PathLike[str]"]


class GitError(RuntimeError):
    """Raised when a git command fails."""


class ConflictError(GitError):
    """Raised when a merge stops on conflicts."""

    def __init__(self, files: list[str]):
        self.files = list(files)
        super().__init__(
            f"merge conflict in {len(self.files)} files: {', '.join(self.files)}"
        )


def _run(
    directory: PathType, args: list[str], describe: str, combine: bool = False
) -> subprocess.CompletedProcess:
    cmd = ["git", "-C", str(directory), *args]
    try:
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine else subprocess.PIPE,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise GitError(f"{describe}: {exc}") from exc


def _exit(proc: subprocess.CompletedProcess) -> str:
    return f"exit status {proc.returncode}"


def _lines(text: str) -> list[str]:
    return [line for line in text.strip().split("\n") if line]


def repo_root(directory: PathType) -> str:
    """Return the top-level directory of the repository containing directory."""
    describe = f"git rev-parse --show-toplevel in {directory}"
    proc = _run(directory, ["rev-parse", "--show-toplevel"], describe)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return proc.stdout.strip()


def current_branch(directory: PathType) -> str:
    """Return the name of the checked-out branch."""
    describe = f"git rev-parse --abbrev-ref HEAD in {directory}"
    proc = _run(directory, ["rev-parse", "--abbrev-ref", "HEAD"], describe)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return proc.stdout.strip()


def has_uncommitted_changes(directory: PathType) -> bool:
    """Return True if the working tree or index differs from HEAD."""
    describe = f"checking uncommitted changes in {directory}"
    proc = _run(directory, ["diff", "--quiet", "HEAD"], describe)
    if proc.returncode == 0:
        return False
    if proc.returncode == 1:
        return True
    raise GitError(f"{describe}: {_exit(proc)}")


def has_unmerged_changes(directory: PathType, branch: str, base_branch: str) -> bool:
    """Return True if branch has commits that base_branch lacks."""
    describe = f"checking unmerged changes in {directory}"
    proc = _run(directory, ["log", "--oneline", f"{base_branch}..{branch}"], describe)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return proc.stdout.strip() != ""


def add_and_commit(directory: PathType, message: str) -> str:
    """Stage everything and commit; return the new SHA, or "" if nothing changed."""
    proc = _run(directory, ["add", "-A"], f"git add in {directory}", combine=True)
    if proc.returncode != 0:
        raise GitError(f"git add in {directory}: {proc.stdout.strip()}: {_exit(proc)}")

    proc = _run(directory, ["diff", "--cached", "--quiet"], f"git diff in {directory}")
    if proc.returncode == 0:
        return ""

    proc = _run(directory, ["commit", "-m", message], f"git commit in {directory}", combine=True)
    if proc.returncode != 0:
        raise GitError(
            f"git commit in {directory}: {proc.stdout.strip()}: {_exit(proc)}"
        )

    describe = f"getting commit sha in {directory}"
    proc = _run(directory, ["rev-parse", "HEAD"], describe)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return proc.stdout.strip()


def worktree_add(repo: PathType, worktree_dir: PathType, branch: str) -> None:
    """Create a worktree at worktree_dir on a new branch."""
    describe = f"git worktree add -b {branch} {worktree_dir}"
    proc = _run(repo, ["worktree", "add", "-b", branch, str(worktree_dir)], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")


def worktree_remove(repo: PathType, worktree_dir: PathType) -> None:
    """Forcefully remove a worktree."""
    describe = f"git worktree remove {worktree_dir}"
    proc = _run(repo, ["worktree", "remove", "--force", str(worktree_dir)], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")


def delete_branch(repo: PathType, branch: str) -> None:
    """Force-delete a local branch."""
    describe = f"git branch -D {branch}"
    proc = _run(repo, ["branch", "-D", branch], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")


def _checkout(directory: PathType, base_branch: str) -> None:
    describe = f"git checkout {base_branch}"
    proc = _run(directory, ["checkout", base_branch], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")


def _is_conflict(output: str) -> bool:
    return "CONFLICT" in output or "Automatic merge failed" in output


def _conflict_files(directory: PathType) -> list[str]:
    proc = _run(directory, ["diff", "--name-only", "--diff-filter=U"], "git diff")
    if proc.returncode != 0:
        return []
    return _lines(proc.stdout)


def _rev_parse(directory: PathType, ref: str) -> str:
    describe = f"git rev-parse {ref}"
    proc = _run(directory, ["rev-parse", ref], describe)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return proc.stdout.strip()


def merge_no_ff(directory: PathType, branch: str, base_branch: str, message: str) -> str:
    """Merge branch into base_branch with a merge commit and return its SHA.

    Raises ConflictError when the merge stops on conflicts.
    """
    _checkout(directory, base_branch)
    describe = f"git merge --no-ff {branch}"
    proc = _run(directory, ["merge", "--no-ff", branch, "-m", message], describe, combine=True)
    if proc.returncode != 0:
        if _is_conflict(proc.stdout):
            raise ConflictError(_conflict_files(directory))
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")
    return _rev_parse(directory, "HEAD")


def merge_squash(directory: PathType, branch: str, base_branch: str, message: str) -> str:
    """Squash-merge branch into base_branch, commit, and return the commit SHA.

    Raises ConflictError when the merge stops on conflicts.
    """
    _checkout(directory, base_branch)
    describe = f"git merge --squash {branch}"
    proc = _run(directory, ["merge", "--squash", branch], describe, combine=True)
    if proc.returncode != 0:
        if _is_conflict(proc.stdout):
            raise ConflictError(_conflict_files(directory))
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")

    proc = _run(directory, ["commit", "-m", message], "git commit", combine=True)
    if proc.returncode != 0:
        raise GitError(f"git commit: {proc.stdout}: {_exit(proc)}")
    return _rev_parse(directory, "HEAD")


def list_unmerged_branches(directory: PathType, base_branch: str) -> list[str]:
    """Return local branches not yet merged into base_branch."""
    describe = f"git branch --no-merged {base_branch}"
    proc = _run(
        directory,
        ["branch", "--no-merged", base_branch, "--format", "%(refname:short)"],
        describe,
    )
    if proc.returncode != 0:
        raise GitError(f"{describe}: {_exit(proc)}")
    return _lines(proc.stdout)


def reset_hard(directory: PathType) -> None:
    """Reset the index and working tree to HEAD."""
    describe = "git reset --hard HEAD"
    proc = _run(directory, ["reset", "--hard", "HEAD"], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")


def abort_merge(directory: PathType) -> None:
    """Abort a merge in progress."""
    describe = "git merge --abort"
    proc = _run(directory, ["merge", "--abort"], describe, combine=True)
    if proc.returncode != 0:
        raise GitError(f"{describe}: {proc.stdout}: {_exit(proc)}")