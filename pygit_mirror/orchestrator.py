"""MirrorOrchestrator: coordinates mirroring of one or more repository pairs."""

from __future__ import annotations

import concurrent.futures
import threading
from collections.abc import Sequence

from tqdm import tqdm

from pygit_mirror.errors import MirrorError
from pygit_mirror.mirror import RepositoryMirror, StagingFactory
from pygit_mirror.models import MirrorConfig, MirrorOutcome, MirrorResult
from pygit_mirror.output import BufferedOutputHandler
from pygit_mirror.protocols import MirrorHook, OutputHandler
from pygit_mirror.repository import staging_repository


class MirrorOrchestrator:
    """Main orchestrator - runs mirror pairs and collects their outcomes"""

    def __init__(
        self,
        output: OutputHandler,
        hooks: list[MirrorHook] = None,
        parallel: bool = False,
        max_workers: int = 4,
        staging_factory: StagingFactory = staging_repository,
    ):
        """Create an orchestrator with an output handler, optional hooks and parallelism settings."""
        self.output = output
        self.hooks = hooks or []
        self.parallel = parallel
        self.max_workers = max_workers
        self.staging_factory = staging_factory

    def mirror_all(self, configs: Sequence[MirrorConfig]) -> MirrorResult:
        """Mirror every configured pair (sequential or parallel). Pairs share no state."""
        if not configs:
            self.output.warning("No repositories configured for mirroring")
            return MirrorResult()

        if self.parallel and len(configs) > 1:
            return self._mirror_parallel(configs)
        return self._mirror_sequential(configs)

    def _mirror_sequential(self, configs: Sequence[MirrorConfig]) -> MirrorResult:
        """Mirror pairs one at a time with a progress bar."""
        combined = MirrorResult()

        with tqdm(total=len(configs), desc="Mirroring", unit="repo", disable=len(configs) < 2) as pbar:
            for config in configs:
                pbar.set_postfix_str(config.src_repo, refresh=True)
                outcome = self.mirror(config)
                if outcome is not None:
                    combined.add(outcome)
                pbar.update(1)

        return combined

    def _mirror_parallel(self, configs: Sequence[MirrorConfig]) -> MirrorResult:
        """Mirror pairs concurrently with buffered output per thread."""
        combined = MirrorResult()
        lock = threading.Lock()

        def _mirror_with_buffer(config: MirrorConfig) -> tuple[MirrorOutcome | None, BufferedOutputHandler]:
            buf = BufferedOutputHandler()
            return self.mirror(config, output_override=buf), buf

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(_mirror_with_buffer, config): config for config in configs}

            with tqdm(total=len(configs), desc="Mirroring repositories") as pbar:
                for future in concurrent.futures.as_completed(futures):
                    config = futures[future]
                    try:
                        outcome, buf = future.result()
                        with lock:
                            buf.flush_to(self.output)
                            if outcome is not None:
                                combined.add(outcome)
                    except Exception as e:
                        with lock:
                            self.output.error(f"Error mirroring {config.src_repo}: {e}")
                            combined.add(MirrorOutcome(config.src_repo, config.dst_repo, error=e))
                    finally:
                        pbar.set_postfix_str(config.src_repo, refresh=True)
                        pbar.update(1)

        return combined

    def mirror(self, config: MirrorConfig, output_override: OutputHandler = None) -> MirrorOutcome | None:
        """Mirror a single pair, running hooks. Returns None if a hook skipped it."""
        output = output_override or self.output

        for hook in self.hooks:
            if not hook.before_mirror(config):
                return None

        output.section(f"Mirroring: {config.src_repo} -> {config.dst_repo}")
        try:
            outcome = RepositoryMirror(config, output, self.staging_factory).run()
        except MirrorError as e:
            output.error(f"Mirror operation failed: {e}")
            for hook in self.hooks:
                hook.on_error(config, e)
            outcome = MirrorOutcome(config.src_repo, config.dst_repo, stage=e.stage, error=e)
        else:
            if outcome.pruned:
                output.info(f"Pruned {len(outcome.pruned)} reference(s) from the destination.", indent=1)

        for hook in self.hooks:
            hook.after_mirror(config, outcome)
        return outcome
