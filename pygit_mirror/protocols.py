"""Protocols and abstract interfaces for dependency injection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from pygit_mirror.models import (
    MirrorConfig,
    MirrorOutcome,
    OperationResult,
    Reference,
    RefSpec,
)


class ReferenceStore(Protocol):
    """Protocol for a repository's reference storage"""

    def references(self) -> list[Reference]: ...
    def remove_reference(self, name: str) -> None: ...


class StagingRepository(ReferenceStore, Protocol):
    """Protocol for the transient repository a mirror is staged in"""

    def create_remote(self, name: str, url: str) -> OperationResult: ...
    def fetch(self, remote: str, refspecs: Sequence[RefSpec]) -> OperationResult: ...
    def push(
        self,
        remote: str,
        refspecs: Sequence[RefSpec],
        force: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> OperationResult: ...
    def list_remote(
        self, remote: str, env: Mapping[str, str] | None = None
    ) -> tuple[OperationResult, list[Reference]]: ...
    def close(self) -> None: ...

    @property
    def path(self) -> Path: ...


class OutputHandler(Protocol):
    """Protocol for handling output"""

    def info(self, message: str, indent: int = 0) -> None: ...
    def success(self, message: str, indent: int = 0) -> None: ...
    def warning(self, message: str, indent: int = 0) -> None: ...
    def error(self, message: str, indent: int = 0) -> None: ...
    def section(self, title: str) -> None: ...
    def debug(self, message: str) -> None: ...


class MirrorHook(ABC):
    """Abstract base class for mirror hooks (plugin architecture)"""

    @abstractmethod
    def before_mirror(self, config: MirrorConfig) -> bool:
        """Called before mirroring a pair. Return False to skip it."""
        pass

    @abstractmethod
    def after_mirror(self, config: MirrorConfig, outcome: MirrorOutcome) -> None:
        """Called after a pair was mirrored, with its outcome."""
        pass

    @abstractmethod
    def on_error(self, config: MirrorConfig, error: Exception) -> None:
        """Called when mirroring a pair fails."""
        pass
