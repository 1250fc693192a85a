"""Reference filtering and destination diffing."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pygit_mirror.models import Reference, RefSpec
from pygit_mirror.protocols import ReferenceStore

logger = logging.getLogger(__name__)


def filter_out_refs(store: ReferenceStore, prefixes: Sequence[str]) -> None:
    """Remove every reference whose name starts with one of `prefixes`.

    An empty prefix list touches nothing, while a list holding "" matches
    (and removes) every reference. A failed removal propagates; references
    removed before it are not restored.
    """
    if not prefixes:
        return
    for ref in store.references():
        if any(ref.name.startswith(prefix) for prefix in prefixes):
            logger.debug("Removing reference %s", ref.name)
            store.remove_reference(ref.name)


def _names(baseline: ReferenceStore | Iterable[Reference]) -> set[str]:
    refs = baseline.references() if hasattr(baseline, 'references') else baseline
    return {ref.name for ref in refs}


def extra_references(
    baseline: ReferenceStore | Iterable[Reference],
    candidates: Sequence[Reference],
) -> list[Reference]:
    """Return the candidates whose name is not in the baseline.

    Only names are compared. Candidate order and duplicates are kept.
    """
    known = _names(baseline)
    return [ref for ref in candidates if ref.name not in known]


def to_delete_specs(refs: Iterable[Reference]) -> list[RefSpec]:
    """Map references to delete refspecs (":name"), one per reference."""
    return [RefSpec.delete(ref.name) for ref in refs]


def prune_specs(
    baseline: ReferenceStore | Iterable[Reference],
    candidates: Sequence[Reference],
) -> list[RefSpec]:
    """Delete refspecs for the candidates missing from the baseline."""
    return to_delete_specs(extra_references(baseline, candidates))
