"""Pair resolution and the byte-identity fast path.

For each candidate the comparison file is looked up, both files are
mapped, and byte-identical pairs are released immediately without ever
being decoded. Only pairs whose encoded bytes differ leave this module
holding open :class:`~src.side.Side` objects; ownership of those passes
to the dispatcher.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from src.records import PairFailure
from src.side import Side
from src.walker import PairCandidate


class PairStatus(Enum):
    """Terminal (or hand-off) state of a candidate after resolution."""

    MISSING = "missing"
    IDENTICAL = "identical"
    DIFFERENT = "different"
    FAILED = "failed"


@dataclass
class PairResolution:
    """Outcome of resolving one candidate.

    ``baseline`` and ``comparison`` are only set (and open) when
    ``status`` is ``DIFFERENT``; ``failure`` only when it is ``FAILED``.
    """

    candidate: PairCandidate
    status: PairStatus
    baseline: Side | None = None
    comparison: Side | None = None
    failure: PairFailure | None = None

    @property
    def is_paired(self) -> bool:
        """Whether a counterpart was located (identical or not)."""
        return self.status is not PairStatus.MISSING


def resolve_pair(
    candidate: PairCandidate,
    baseline_root: Path,
    comparison_root: Path,
) -> PairResolution:
    """Locate, map and byte-compare one candidate pair.

    Args:
        candidate: Baseline path and derived comparison path
        baseline_root: Root of the walked tree
        comparison_root: Root of the counterpart tree

    Returns:
        PairResolution describing what happened to the pair
    """
    try:
        candidate.comparison.stat()
    except OSError:
        return PairResolution(candidate=candidate, status=PairStatus.MISSING)

    baseline = Side(root=baseline_root, path=candidate.baseline)
    comparison = Side(root=comparison_root, path=candidate.comparison)

    try:
        baseline.open()
        comparison.open()
    except OSError as e:
        baseline.release()
        comparison.release()
        failure = PairFailure(
            baseline=str(candidate.baseline),
            comparison=str(candidate.comparison),
            stage="open",
            message=str(e),
        )
        return PairResolution(candidate=candidate, status=PairStatus.FAILED, failure=failure)

    if baseline.same_bytes(comparison):
        baseline.release()
        comparison.release()
        return PairResolution(candidate=candidate, status=PairStatus.IDENTICAL)

    return PairResolution(
        candidate=candidate,
        status=PairStatus.DIFFERENT,
        baseline=baseline,
        comparison=comparison,
    )
