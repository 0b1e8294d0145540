"""Pick the stored baseline that best matches a fresh capture set."""

from __future__ import annotations

import logging
from pathlib import Path

from vrt.baseline.store import BaselineStore
from vrt.diff.comparison import list_pngs
from vrt.models.baseline import DEFAULT_POINTER, BaselineCandidate

logger = logging.getLogger(__name__)


def similarity_score(fresh_dir: str | Path, candidate_dir: str | Path) -> float:
    """Share of PNG names the two directories have in common.

    ``|common| / max(|fresh|, |candidate|)``, and 0 when both are empty.
    """
    fresh = set(list_pngs(Path(fresh_dir)))
    candidate = set(list_pngs(Path(candidate_dir)))
    largest = max(len(fresh), len(candidate))
    if largest == 0:
        return 0.0
    return len(fresh & candidate) / largest


def auto_select(
    store: BaselineStore, fresh_dir: str | Path, threshold: float = 0.8,
) -> BaselineCandidate:
    """Return the highest-scoring candidate above ``threshold``, else the current baseline.

    Ties go to the earliest candidate in store order.
    """
    best: BaselineCandidate | None = None
    for candidate in store.candidates():
        scored = candidate.model_copy(update={"score": similarity_score(fresh_dir, candidate.directory)})
        logger.debug("Candidate %s scored %.3f", scored.name, scored.score)
        if best is None or scored.score > best.score:
            best = scored

    if best is not None and best.score > threshold:
        logger.info("Auto-selected baseline: %s (similarity: %.1f%%)", best.name, best.score * 100)
        return best

    logger.info("No suitable baseline found, using current")
    return BaselineCandidate(
        name=DEFAULT_POINTER,
        kind="current",
        directory=str(store.current_dir),
        score=similarity_score(fresh_dir, store.current_dir),
    )
