"""Shared test fixtures and helpers.

Images are generated with Pillow into ``tmp_path``; the tree fixtures
build baseline/comparison roots the pipeline tests walk.
"""

from pathlib import Path

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from src.pairing import PairStatus, resolve_pair
from src.records import DiffRecord
from src.walker import PairCandidate

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def create_test_image(
    path: Path,
    size: tuple[int, int] = (16, 16),
    mode: str = "RGB",
    color: tuple[int, ...] | int = (128, 128, 128),
    changed_pixels: dict[tuple[int, int], tuple[int, ...]] | None = None,
    text: str | None = None,
) -> Path:
    """Create a small test image and return its path.

    Args:
        path: Where to save the image (format from the suffix)
        size: (width, height)
        mode: Pillow mode
        color: Fill colour
        changed_pixels: Optional ``{(x, y): colour}`` overrides
        text: Optional PNG text chunk, changes the bytes but not the pixels
    """
    img = Image.new(mode, size, color=color)
    for xy, value in (changed_pixels or {}).items():
        img.putpixel(xy, value)
    path.parent.mkdir(parents=True, exist_ok=True)
    if text is not None:
        info = PngInfo()
        info.add_text("Comment", text)
        img.save(path, pnginfo=info)
    else:
        img.save(path)
    return path


def make_record(baseline: Path, comparison: Path) -> DiffRecord:
    """Resolve two differing files into an open, unscored DiffRecord."""
    resolution = resolve_pair(
        PairCandidate(baseline=baseline, comparison=comparison),
        baseline.parent,
        comparison.parent,
    )
    assert resolution.status is PairStatus.DIFFERENT
    return DiffRecord(baseline=resolution.baseline, comparison=resolution.comparison)


# ---------------------------------------------------------------------------
# Tree fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def trees(tmp_path: Path) -> tuple[Path, Path]:
    """Empty baseline and comparison roots."""
    before = tmp_path / "before"
    after = tmp_path / "after"
    before.mkdir()
    after.mkdir()
    return before, after


@pytest.fixture
def scenario_trees(trees: tuple[Path, Path]) -> tuple[Path, Path]:
    """Baseline with a.png (identical), b.png (one pixel changed), c.png (unpaired)."""
    before, after = trees
    create_test_image(before / "a.png")
    create_test_image(after / "a.png")
    create_test_image(before / "b.png")
    create_test_image(after / "b.png", changed_pixels={(3, 4): (255, 0, 0)})
    create_test_image(before / "c.png")
    return before, after
