"""SummaryReporter: generates and displays the final report."""

from __future__ import annotations

from pygit_mirror.models import MirrorOutcome, MirrorResult, MirrorStage
from pygit_mirror.output import SECTION_WIDTH
from pygit_mirror.protocols import OutputHandler

STAGE_TITLES = {
    MirrorStage.STAGE: "\U0001f4e5 STAGING FAILURES",
    MirrorStage.FILTER: "\U0001f9f9 FILTER FAILURES",
    MirrorStage.AUTHENTICATE: "\U0001f511 AUTHENTICATION FAILURES",
    MirrorStage.PUSH: "⬆️  PUSH FAILURES",
    MirrorStage.PRUNE: "\U0001f5d1️  PRUNE FAILURES",
}


class SummaryReporter:
    """Generates and displays summary reports"""

    def __init__(self, output: OutputHandler):
        """Create a reporter that writes to the given output handler."""
        self.output = output

    def print_summary(self, result: MirrorResult):
        """Print the final summary report with failures grouped by stage."""
        self.output.section("╔" + "=" * SECTION_WIDTH + "╗")
        self.output.info("║" + "SUMMARY REPORT".center(SECTION_WIDTH) + "║")
        self.output.info("╚" + "=" * SECTION_WIDTH + "╝")
        self.output.info("")
        self.output.info(f"Total mirrors processed: {len(result.outcomes)}")
        self.output.info("")

        if result.has_failures():
            self._print_failures(result)
        else:
            self._print_success_summary(result)

        self.output.info("")
        self.output.info("=" * SECTION_WIDTH)

    def _print_failures(self, result: MirrorResult):
        self.output.warning("⚠️  ATTENTION REQUIRED")
        self.output.info("")
        for stage, title in STAGE_TITLES.items():
            self._print_failure_category(title, result.failures_by_stage(stage))
        self._print_failure_category(
            "\U0001f534 UNEXPECTED FAILURES",
            [o for o in result.failures() if o.stage is None],
        )

    def _print_success_summary(self, result: MirrorResult):
        self.output.success("✅ ALL MIRRORS ARE UP TO DATE!")
        self.output.info("")
        pushed = sum(o.pushed for o in result.outcomes)
        pruned = sum(len(o.pruned) for o in result.outcomes)
        self.output.info(f"Mirrored {pushed} reference(s)")
        if pruned:
            self.output.info(f"Pruned {pruned} reference(s)")

    def _print_failure_category(self, title: str, outcomes: list[MirrorOutcome]):
        """Print a single failure category with its title and per-pair details."""
        if not outcomes:
            return

        self.output.info(f"{title} ({len(outcomes)}):")
        self.output.info("-" * SECTION_WIDTH)
        for outcome in outcomes:
            self.output.info(f"  \U0001f4e6 {outcome.src_repo} -> {outcome.dst_repo}")
            self.output.info(f"     ↳ {outcome.error}")
        self.output.info("")
