"""Domain models: references, refspecs, configuration and results."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Any

DEFAULT_EXCLUDE_PREFIXES = ('refs/pull',)


def mask(value: str) -> str:
    """Return a stable one-way digest of a secret, or '' for an empty value."""
    if not value:
        return ''
    return hashlib.md5(value.encode('utf-8')).hexdigest()


class MirrorStage(Enum):
    """Stages of a single mirror operation, in execution order"""
    STAGE = auto()
    FILTER = auto()
    AUTHENTICATE = auto()
    PUSH = auto()
    PRUNE = auto()

    @property
    def label(self) -> str:
        return self.name.lower()


class OperationType(Enum):
    """Types of transport operations"""
    FETCH = auto()
    PUSH = auto()
    LIST = auto()
    REMOTE_CREATE = auto()


@dataclass(frozen=True)
class Reference:
    """A named pointer to an object id"""
    name: str
    target: str | None = None

    @property
    def is_head(self) -> bool:
        return self.name == 'HEAD'


@dataclass(frozen=True)
class RefSpec:
    """A push/fetch refspec. An empty src is the delete form."""
    src: str
    dst: str

    @classmethod
    def delete(cls, name: str) -> RefSpec:
        """Build the refspec that removes `name` from the remote."""
        return cls('', name)

    @property
    def is_delete(self) -> bool:
        return self.src == ''

    def __str__(self) -> str:
        return f"{self.src}:{self.dst}"


MIRROR_REFSPEC = RefSpec('refs/*', 'refs/*')


@dataclass(frozen=True)
class OperationResult:
    """Result of a single transport operation"""
    success: bool
    operation: OperationType
    message: str
    error: Exception | None = None
    up_to_date: bool = False


@dataclass(frozen=True)
class SshConfig:
    """SSH material used for authenticated transport"""
    private_key: str = ''
    known_hosts: str = ''
    known_hosts_path: str = ''

    def with_updates(self, **kwargs) -> SshConfig:
        """Return a new SshConfig with the given fields replaced."""
        current = {f.name: getattr(self, f.name) for f in self.__dataclass_fields__.values()}
        current.update(kwargs)
        return SshConfig(**current)


@dataclass(frozen=True)
class MirrorConfig:
    """Configuration of one source/destination mirror pair"""
    src_repo: str = ''
    dst_repo: str = ''
    ssh: SshConfig = field(default_factory=SshConfig)
    debug: bool = False
    exclude_prefixes: tuple[str, ...] = DEFAULT_EXCLUDE_PREFIXES

    def with_updates(self, **kwargs) -> MirrorConfig:
        """Return a new MirrorConfig with the given fields replaced."""
        current = {f.name: getattr(self, f.name) for f in self.__dataclass_fields__.values()}
        current.update(kwargs)
        return MirrorConfig(**current)

    def pretty(self) -> str:
        """Render the configuration as JSON with the SSH secrets masked."""
        data = asdict(self)
        data['ssh']['private_key'] = mask(self.ssh.private_key)
        data['ssh']['known_hosts'] = mask(self.ssh.known_hosts)
        data['exclude_prefixes'] = list(self.exclude_prefixes)
        return json.dumps(data, indent=4)


@dataclass(frozen=True)
class MirrorOutcome:
    """Terminal state of one mirror pair: success, or the failed stage and its error"""
    src_repo: str
    dst_repo: str
    stage: MirrorStage | None = None
    error: Exception | None = None
    pushed: int = 0
    pruned: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.succeeded:
            return f"{self.src_repo} -> {self.dst_repo}"
        return f"{self.src_repo} -> {self.dst_repo}: {self.error}"


@dataclass
class MirrorResult:
    """Mutable accumulator over mirror outcomes"""
    outcomes: list[MirrorOutcome] = field(default_factory=list)

    def add(self, outcome: MirrorOutcome) -> None:
        """Record the outcome of one mirror pair."""
        self.outcomes.append(outcome)

    def failures(self) -> list[MirrorOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def failures_by_stage(self, stage: MirrorStage) -> list[MirrorOutcome]:
        """Filter failed outcomes by the stage that failed."""
        return [o for o in self.failures() if o.stage == stage]

    def has_failures(self) -> bool:
        return any(not o.succeeded for o in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            'mirrors': [
                {
                    'source': o.src_repo,
                    'destination': o.dst_repo,
                    'succeeded': o.succeeded,
                    'stage': o.stage.label if o.stage else None,
                    'error': str(o.error) if o.error else None,
                    'pushed': o.pushed,
                    'pruned': list(o.pruned),
                }
                for o in self.outcomes
            ],
            'has_failures': self.has_failures(),
        }
