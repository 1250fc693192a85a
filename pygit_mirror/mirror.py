"""RepositoryMirror: mirrors one source repository into one destination."""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Mapping
from typing import ContextManager

from git import GitCommandError

from pygit_mirror.auth import ssh_auth
from pygit_mirror.errors import (
    FilterError,
    ListError,
    PruneError,
    PushError,
    StagingError,
)
from pygit_mirror.models import MIRROR_REFSPEC, MirrorConfig, MirrorOutcome
from pygit_mirror.protocols import OutputHandler, StagingRepository
from pygit_mirror.refs import filter_out_refs, prune_specs
from pygit_mirror.repository import staging_repository

SRC_REMOTE = 'src'
DST_REMOTE = 'dst'

StagingFactory = Callable[[], ContextManager[StagingRepository]]


class RepositoryMirror:
    """Runs the stages of one mirror operation, stopping at the first failure.

    Stages: stage the source in a private repository, filter out excluded
    references, set up authentication, force-push everything to the
    destination, then prune what the destination has and the filtered
    source does not. Pruning is a separate push so nothing is deleted
    before the diff against the staged references confirms it.
    """

    def __init__(
        self,
        config: MirrorConfig,
        output: OutputHandler,
        staging_factory: StagingFactory = staging_repository,
    ):
        """Create a mirror for a validated configuration."""
        self.config = config
        self.output = output
        self.staging_factory = staging_factory

    def run(self) -> MirrorOutcome:
        """Mirror the source into the destination. Raises MirrorError on failure."""
        with contextlib.ExitStack() as stack:
            staging = self._stage(stack)
            self._filter(staging)
            auth = stack.enter_context(ssh_auth(self.config.ssh))
            env = auth.environment() if auth else None
            pushed = self._push(staging, env)
            pruned = self._prune(staging, env)

        return MirrorOutcome(
            self.config.src_repo,
            self.config.dst_repo,
            pushed=pushed,
            pruned=pruned,
        )

    def _stage(self, stack: contextlib.ExitStack) -> StagingRepository:
        """Set up the staging repository and fetch every source reference into it."""
        self.output.info("Setting up a staging git repository.")
        try:
            staging = stack.enter_context(self.staging_factory())
        except (GitCommandError, OSError) as e:
            raise StagingError("failed initialising staging git repository", e) from e

        result = staging.create_remote(SRC_REMOTE, self.config.src_repo)
        if not result.success:
            raise StagingError("failed configuring source remote", result.error)

        self.output.info(f"Fetching all refs from {self.config.src_repo} ...")
        result = staging.fetch(SRC_REMOTE, [MIRROR_REFSPEC])
        if not result.success:
            raise StagingError("failed to fetch source remote", result.error)
        if result.up_to_date:
            self.output.debug("Nothing fetched from the source.")
        return staging

    def _filter(self, staging: StagingRepository) -> None:
        """Drop the excluded reference namespaces from the staging repository."""
        self.output.debug(f"Filtering out {', '.join(self.config.exclude_prefixes) or 'nothing'}.")
        try:
            filter_out_refs(staging, self.config.exclude_prefixes)
        except OSError as e:
            raise FilterError("failed to filter out the refs", e) from e

    def _push(self, staging: StagingRepository, env: Mapping[str, str] | None) -> int:
        """Force-push all staged references; returns how many were pushed."""
        result = staging.create_remote(DST_REMOTE, self.config.dst_repo)
        if not result.success:
            raise PushError("failed configuring destination remote", result.error)

        self.output.info("Pushing to destination...")
        result = staging.push(DST_REMOTE, [MIRROR_REFSPEC], force=True, env=env)
        if not result.success:
            raise PushError("failed to push to destination", result.error)
        if result.up_to_date:
            self.output.info("Destination already up to date.")
        else:
            self.output.success("Successfully mirror pushed to destination repository.")
        return sum(1 for ref in staging.references() if not ref.is_head)

    def _prune(self, staging: StagingRepository, env: Mapping[str, str] | None) -> tuple[str, ...]:
        """Delete destination references the filtered source does not have."""
        result, dst_refs = staging.list_remote(DST_REMOTE, env=env)
        if not result.success:
            raise ListError("failed to list the destination remote", result.error)

        try:
            specs = prune_specs(staging, dst_refs)
        except OSError as e:
            raise PruneError("failed to prune destination", e) from e
        if not specs:
            self.output.debug("Nothing to prune.")
            return ()

        self.output.info("Pruning the destination...")
        for spec in specs:
            self.output.debug(f"Deleting {spec.dst}")
        result = staging.push(DST_REMOTE, specs, env=env)
        if not result.success:
            raise PruneError("failed to prune destination", result.error)
        return tuple(spec.dst for spec in specs)
