"""Concrete GitPython-based staging repository and transport."""

from __future__ import annotations

import contextlib
import logging
import tempfile
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path

from git import GitCommandError, Repo
from git.refs import SymbolicReference

from pygit_mirror.models import (
    OperationResult,
    OperationType,
    Reference,
    RefSpec,
)

STAGING_DIR_PREFIX = 'pygit-mirror-staging-'
UP_TO_DATE_MARKER = 'Everything up-to-date'
PEELED_SUFFIX = '^{}'


class GitPythonRepository:
    """Concrete implementation using GitPython"""

    def __init__(self, repo_path: Path):
        """Open a git repository at the given path."""
        self._path = repo_path
        self._repo = Repo(repo_path)
        self._logger = logging.getLogger(__name__)

    @classmethod
    def init_bare(cls, repo_path: Path) -> GitPythonRepository:
        """Initialise an empty bare repository at repo_path and open it."""
        Repo.init(repo_path, mkdir=True, bare=True).close()
        return cls(repo_path)

    def close(self) -> None:
        """Release underlying git resources."""
        self._repo.close()

    @property
    def path(self) -> Path:
        """Path to the repository's git directory."""
        return self._path

    def _resolve(self, ref_path: str) -> str | None:
        try:
            return SymbolicReference.dereference_recursive(self._repo, ref_path)
        except ValueError:
            return None

    def references(self) -> list[Reference]:
        """Return every reference, HEAD included, read straight from the ref storage."""
        refs = []
        if (Path(self._repo.git_dir) / 'HEAD').is_file():
            refs.append(Reference('HEAD', self._resolve('HEAD')))
        for ref in self._repo.refs:
            refs.append(Reference(str(ref.path), self._resolve(ref.path)))
        return refs

    def remove_reference(self, name: str) -> None:
        """Delete a reference (loose, packed and its reflog). Raises OSError on failure."""
        self._logger.debug("Deleting %s in %s", name, self._path)
        SymbolicReference.delete(self._repo, name)

    def create_remote(self, name: str, url: str) -> OperationResult:
        """Register a remote under the given name."""
        try:
            self._repo.create_remote(name, url)
            return OperationResult(True, OperationType.REMOTE_CREATE, f"Added remote {name}")
        except GitCommandError as e:
            return OperationResult(False, OperationType.REMOTE_CREATE, "Remote creation failed", e)

    def fetch(self, remote: str, refspecs: Sequence[RefSpec]) -> OperationResult:
        """Fetch the given refspecs from a remote. Nothing fetched is reported as up to date."""
        try:
            _status, _stdout, stderr = self._repo.git.fetch(
                '--refmap=', remote, *[str(spec) for spec in refspecs], with_extended_output=True
            )
        except GitCommandError as e:
            return OperationResult(False, OperationType.FETCH, "Fetch failed", e)
        up_to_date = not stderr.strip()
        return OperationResult(True, OperationType.FETCH, f"Fetched from {remote}", up_to_date=up_to_date)

    def push(
        self,
        remote: str,
        refspecs: Sequence[RefSpec],
        force: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> OperationResult:
        """Push refspecs to a remote, optionally forced, under an extra environment."""
        args = ['--force'] if force else []
        args.append(remote)
        args.extend(str(spec) for spec in refspecs)
        try:
            with self._repo.git.custom_environment(**(env or {})):
                _status, stdout, stderr = self._repo.git.push(*args, with_extended_output=True)
        except GitCommandError as e:
            return OperationResult(False, OperationType.PUSH, "Push failed", e)
        up_to_date = UP_TO_DATE_MARKER in stderr or UP_TO_DATE_MARKER in stdout
        return OperationResult(True, OperationType.PUSH, f"Pushed to {remote}", up_to_date=up_to_date)

    def list_remote(
        self, remote: str, env: Mapping[str, str] | None = None
    ) -> tuple[OperationResult, list[Reference]]:
        """List the references a remote advertises (peeled tag entries skipped)."""
        try:
            with self._repo.git.custom_environment(**(env or {})):
                output = self._repo.git.ls_remote(remote)
        except GitCommandError as e:
            return OperationResult(False, OperationType.LIST, "Listing remote failed", e), []

        refs = []
        for line in output.splitlines():
            target, _, name = line.partition('\t')
            if not name or name.endswith(PEELED_SUFFIX):
                continue
            refs.append(Reference(name.strip(), target.strip()))
        return OperationResult(True, OperationType.LIST, f"Listed {len(refs)} refs on {remote}"), refs


@contextlib.contextmanager
def staging_repository() -> Iterator[GitPythonRepository]:
    """Yield a fresh bare repository in a private temporary directory, removed on exit."""
    with tempfile.TemporaryDirectory(prefix=STAGING_DIR_PREFIX) as tmp:
        repo = GitPythonRepository.init_bare(Path(tmp) / 'staging.git')
        try:
            yield repo
        finally:
            repo.close()
