"""
pygit-mirror: Git Repository Mirroring Tool

Mirrors every reference of a source git repository into a destination
repository, leaving out excluded namespaces (pull requests by default)
and pruning what the source no longer has.
"""

from colorama import init as colorama_init

colorama_init(autoreset=True)

__version__ = "1.0.0"

# Re-export public API so `from pygit_mirror import X` keeps working.
from pygit_mirror.auth import SshAuth, ssh_auth  # noqa: E402
from pygit_mirror.cli import main  # noqa: E402
from pygit_mirror.config import (  # noqa: E402
    build_configs,
    create_argument_parser,
    load_config_file,
    resolve,
    validate,
)
from pygit_mirror.errors import (  # noqa: E402
    AuthSetupError,
    ConfigErrorKind,
    ConfigurationError,
    FilterError,
    ListError,
    MirrorError,
    PruneError,
    PushError,
    PyGitMirrorError,
    StagingError,
)
from pygit_mirror.mirror import RepositoryMirror  # noqa: E402
from pygit_mirror.models import (  # noqa: E402
    DEFAULT_EXCLUDE_PREFIXES,
    MIRROR_REFSPEC,
    MirrorConfig,
    MirrorOutcome,
    MirrorResult,
    MirrorStage,
    OperationResult,
    OperationType,
    Reference,
    RefSpec,
    SshConfig,
    mask,
)
from pygit_mirror.orchestrator import MirrorOrchestrator  # noqa: E402
from pygit_mirror.output import (  # noqa: E402
    SECTION_WIDTH,
    BufferedOutputHandler,
    ConsoleOutputHandler,
    NullOutputHandler,
)
from pygit_mirror.protocols import (  # noqa: E402
    MirrorHook,
    OutputHandler,
    ReferenceStore,
    StagingRepository,
)
from pygit_mirror.refs import (  # noqa: E402
    extra_references,
    filter_out_refs,
    prune_specs,
    to_delete_specs,
)
from pygit_mirror.reporter import SummaryReporter  # noqa: E402
from pygit_mirror.repository import GitPythonRepository, staging_repository  # noqa: E402

__all__ = [
    "__version__",
    # Models
    "DEFAULT_EXCLUDE_PREFIXES",
    "MIRROR_REFSPEC",
    "MirrorConfig",
    "MirrorOutcome",
    "MirrorResult",
    "MirrorStage",
    "OperationResult",
    "OperationType",
    "Reference",
    "RefSpec",
    "SshConfig",
    "mask",
    # Errors
    "AuthSetupError",
    "ConfigErrorKind",
    "ConfigurationError",
    "FilterError",
    "ListError",
    "MirrorError",
    "PruneError",
    "PushError",
    "PyGitMirrorError",
    "StagingError",
    # Protocols
    "MirrorHook",
    "OutputHandler",
    "ReferenceStore",
    "StagingRepository",
    # Implementations
    "GitPythonRepository",
    "staging_repository",
    "SshAuth",
    "ssh_auth",
    "BufferedOutputHandler",
    "ConsoleOutputHandler",
    "NullOutputHandler",
    "SECTION_WIDTH",
    # Reference reconciliation
    "extra_references",
    "filter_out_refs",
    "prune_specs",
    "to_delete_specs",
    # Services
    "RepositoryMirror",
    "MirrorOrchestrator",
    "SummaryReporter",
    # Config / CLI
    "build_configs",
    "create_argument_parser",
    "load_config_file",
    "resolve",
    "validate",
    "main",
]
