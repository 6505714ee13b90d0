"""Tests for baseline tree traversal and path pairing."""

import os
from pathlib import Path

import pytest
from conftest import create_test_image

from src.walker import derive_comparison_path, iter_candidates, iter_image_files


class TestIterImageFiles:
    """Tests for iter_image_files."""

    def test_finds_nested_files(self, trees: tuple[Path, Path]) -> None:
        before, _ = trees
        create_test_image(before / "top.png")
        create_test_image(before / "sub" / "dir" / "img.png")

        found = list(iter_image_files(before, ".png"))

        assert sorted(found) == [before / "sub" / "dir" / "img.png", before / "top.png"]

    def test_filters_by_extension_case_insensitively(self, trees: tuple[Path, Path]) -> None:
        before, _ = trees
        create_test_image(before / "upper.PNG")
        create_test_image(before / "photo.jpg")
        (before / "notes.txt").write_text("not an image")

        found = list(iter_image_files(before, ".png"))

        assert found == [before / "upper.PNG"]

    def test_directory_named_like_image_is_not_yielded(self, trees: tuple[Path, Path]) -> None:
        before, _ = trees
        (before / "looks.png").mkdir()
        create_test_image(before / "looks.png" / "inner.png")

        found = list(iter_image_files(before, ".png"))

        assert found == [before / "looks.png" / "inner.png"]

    def test_order_is_deterministic(self, trees: tuple[Path, Path]) -> None:
        before, _ = trees
        for name in ["c.png", "a.png", "b.png"]:
            create_test_image(before / name)
        create_test_image(before / "a_dir" / "z.png")

        found = [p.relative_to(before).as_posix() for p in iter_image_files(before, ".png")]

        assert found == ["a.png", "b.png", "c.png", "a_dir/z.png"]

    def test_empty_tree(self, trees: tuple[Path, Path]) -> None:
        before, _ = trees
        assert list(iter_image_files(before, ".png")) == []

    def test_unreadable_subdirectory_is_skipped(
        self,
        trees: tuple[Path, Path],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        before, _ = trees
        create_test_image(before / "locked" / "hidden.png")
        create_test_image(before / "open" / "b.png")
        real_scandir = os.scandir

        def scandir(path):
            if Path(path).name == "locked":
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        monkeypatch.setattr("src.walker.os.scandir", scandir)

        found = list(iter_image_files(before, ".png"))

        assert found == [before / "open" / "b.png"]
        assert f"Cannot read directory {before / 'locked'}" in capsys.readouterr().err

    def test_unreadable_root_raises(
        self, trees: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        before, _ = trees

        def scandir(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("src.walker.os.scandir", scandir)

        with pytest.raises(PermissionError):
            list(iter_image_files(before, ".png"))


class TestDeriveComparisonPath:
    """Tests for comparison path derivation."""

    def test_suffix_preserved(self) -> None:
        result = derive_comparison_path(
            Path("baseline/sub/dir/img.png"), Path("baseline"), Path("comparison")
        )
        assert result == Path("comparison/sub/dir/img.png")

    def test_path_outside_root_raises(self) -> None:
        with pytest.raises(ValueError):
            derive_comparison_path(Path("elsewhere/img.png"), Path("baseline"), Path("comparison"))


def test_iter_candidates_pairs_paths(trees: tuple[Path, Path]) -> None:
    """Every baseline image yields a candidate, whether or not a counterpart exists."""
    before, after = trees
    create_test_image(before / "sub" / "dir" / "img.png")
    create_test_image(before / "lonely.png")

    candidates = list(iter_candidates(before, after, ".png"))

    assert len(candidates) == 2
    by_name = {c.baseline.name: c for c in candidates}
    assert by_name["img.png"].comparison == after / "sub" / "dir" / "img.png"
    assert by_name["lonely.png"].comparison == after / "lonely.png"
