"""
Version control collaborator.

Thin synchronous wrapper over the git CLI, scoped to one working
directory and driven through a ProcessRunner.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from .process import ProcessResult, ProcessRunner


class GitRepository:
    """Git operations used by setup, the safe remover and rollback."""

    def __init__(self, root: Path, runner: ProcessRunner) -> None:
        self.root = Path(root)
        self.runner = runner

    def _git(self, *args: str, check: bool = True) -> ProcessResult:
        return self.runner.run(['git', *args], cwd=self.root, check=check)

    def status(self) -> List[str]:
        """Porcelain status lines (empty when the tree is clean)."""
        result = self._git('status', '--porcelain')
        return [line for line in result.stdout.splitlines() if line.strip()]

    def is_clean(self, ignore: Iterable[str] = ()) -> bool:
        """True when no changes exist outside the ignored path prefixes."""
        prefixes = [p.rstrip('/') for p in ignore]
        for line in self.status():
            path = line[3:].strip().strip('"')
            if ' -> ' in path:
                path = path.split(' -> ', 1)[1]
            if any(path == p or path.startswith(p + '/') for p in prefixes):
                continue
            return False
        return True

    def current_branch(self) -> str:
        return self._git('rev-parse', '--abbrev-ref', 'HEAD').stdout.strip()

    def head_revision(self) -> str:
        return self._git('rev-parse', 'HEAD').stdout.strip()

    def branch_exists(self, name: str) -> bool:
        """True when a local branch with this name exists."""
        return bool(self._git('branch', '--list', name).stdout.strip())

    def create_branch(self, name: str) -> None:
        """Create a branch from HEAD and switch to it."""
        self._git('checkout', '-b', name)

    def checkout(self, name: str) -> None:
        self._git('checkout', name)

    def delete_branch(self, name: str) -> None:
        self._git('branch', '-D', name)

    def commit(self, message: str, paths: Sequence[str]) -> str:
        """Stage exactly the given paths (including deletions), commit, and return the new revision."""
        self._git('add', '-A', '--', *paths)
        self._git('commit', '-m', message)
        return self.head_revision()

    def revert_working_tree(self, exclude: Iterable[str] = ()) -> None:
        """Discard every uncommitted change, keeping the excluded untracked paths."""
        self._git('reset', '--hard')
        clean = ['clean', '-fd']
        for path in exclude:
            clean.extend(['-e', path])
        self._git(*clean)
