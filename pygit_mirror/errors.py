"""Exceptions raised by configuration validation and mirror stages."""

from __future__ import annotations

from enum import Enum

from pygit_mirror.models import MirrorStage


class PyGitMirrorError(Exception):
    """Base exception for all pygit-mirror errors."""


class ConfigErrorKind(Enum):
    """Reasons a configuration fails validation"""
    MISSING_SOURCE = "no source repository provided"
    MISSING_DESTINATION = "no destination repository provided"
    CONFLICTING_HOST_KEY_SOURCES = "host public keys provided via both file path and content"
    MISSING_HOST_KEY_SOURCE = "SSH authentication requires host public keys"
    INVALID_EXCLUDE_PREFIXES = "exclude_prefixes must be a string or a list of strings"
    INVALID_MIRRORS = "mirrors must be an array of tables"


class ConfigurationError(PyGitMirrorError):
    """Raised when a configuration is incomplete or inconsistent."""

    def __init__(self, kind: ConfigErrorKind):
        self.kind = kind
        super().__init__(kind.value)


class MirrorError(PyGitMirrorError):
    """A mirror stage failed. Carries the stage and the underlying cause."""

    stage: MirrorStage = MirrorStage.STAGE

    def __init__(self, message: str, cause: BaseException | str | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        text = f"{self.stage.label}: {self.message}"
        if self.cause:
            text = f"{text}: {self.cause}"
        return text


class StagingError(MirrorError):
    """Initialising the staging repository or fetching the source failed."""
    stage = MirrorStage.STAGE


class FilterError(MirrorError):
    """Removing excluded references from the staging repository failed."""
    stage = MirrorStage.FILTER


class AuthSetupError(MirrorError):
    """Preparing SSH key or known-hosts material failed."""
    stage = MirrorStage.AUTHENTICATE


class PushError(MirrorError):
    """The forced mirror push to the destination failed."""
    stage = MirrorStage.PUSH


class ListError(MirrorError):
    """Listing the destination's references failed."""
    stage = MirrorStage.PRUNE


class PruneError(MirrorError):
    """Computing or pushing the delete refspecs failed."""
    stage = MirrorStage.PRUNE
