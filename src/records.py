"""Result records shared by the pipeline stages."""

from dataclasses import dataclass

from src.side import Side


@dataclass
class DiffRecord:
    """A scored pair of non-identical images.

    Created at dispatch time with ``score=None``; the diff worker fills
    in ``score`` (``0.0``–``1.0``, ``1.0`` for mismatched dimensions).
    """

    baseline: Side
    comparison: Side
    score: float | None = None

    @property
    def is_scored(self) -> bool:
        return self.score is not None


@dataclass(frozen=True)
class PairFailure:
    """A pair that could not be compared.

    Attributes:
        baseline: Baseline image path
        comparison: Comparison image path
        stage: Pipeline stage that failed (``"open"`` or ``"decode"``)
        message: Human-readable error description
    """

    baseline: str
    comparison: str
    stage: str
    message: str

    def describe(self) -> str:
        return f"Cannot compare {self.baseline} with {self.comparison} ({self.stage}): {self.message}"


class PairError(OSError):
    """Raised in strict mode when a pair cannot be compared."""

    def __init__(self, failure: PairFailure) -> None:
        super().__init__(failure.describe())
        self.failure = failure
