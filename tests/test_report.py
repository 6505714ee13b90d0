"""Tests for aggregation and HTML report emission."""

from pathlib import Path

import pytest

from src.records import DiffRecord
from src.report import sort_records, write_report
from src.side import Side


def _record(name: str, score: float | None, root: Path = Path("before")) -> DiffRecord:
    return DiffRecord(
        baseline=Side(root=root, path=root / name),
        comparison=Side(root=Path("after"), path=Path("after") / name),
        score=score,
    )


class TestSortRecords:
    """Tests for sort_records."""

    def test_descending_score(self) -> None:
        records = [_record("low.png", 0.1), _record("high.png", 0.9), _record("mid.png", 0.5)]

        ordered = sort_records(records)

        assert [r.score for r in ordered] == [0.9, 0.5, 0.1]

    def test_ties_ordered_by_baseline_path(self) -> None:
        records = [_record("b.png", 0.5), _record("a.png", 0.5), _record("c.png", 1.0)]

        ordered = sort_records(records)

        assert [r.baseline.path.name for r in ordered] == ["c.png", "a.png", "b.png"]

    def test_unscored_record_rejected(self) -> None:
        with pytest.raises(ValueError, match="no score"):
            sort_records([_record("a.png", 0.2), _record("b.png", None)])

    def test_empty(self) -> None:
        assert sort_records([]) == []


class TestWriteReport:
    """Tests for write_report."""

    def test_one_row_per_record_in_order(self, tmp_path: Path) -> None:
        output = tmp_path / "diff.html"
        records = sort_records([_record("second.png", 0.2), _record("first.png", 0.8)])

        rows = write_report(records, output)

        html = output.read_text(encoding="utf-8")
        assert rows == 2
        assert html.count("<tr") == 2
        assert html.index("before/first.png") < html.index("before/second.png")
        assert 'href="after/first.png"' in html
        assert "mix-blend-mode:difference" in html
        assert "grayscale(1)" in html
        assert "<style>" in html

    def test_paths_released_after_emission(self, tmp_path: Path) -> None:
        records = [_record("a.png", 0.3)]

        write_report(records, tmp_path / "diff.html")

        assert records[0].baseline.path is None
        assert records[0].comparison.path is None

    def test_empty_report_has_no_rows(self, tmp_path: Path) -> None:
        output = tmp_path / "nested" / "diff.html"

        assert write_report([], output) == 0
        html = output.read_text(encoding="utf-8")
        assert "<table>" in html
        assert "<tr" not in html

    def test_paths_are_url_quoted(self, tmp_path: Path) -> None:
        output = tmp_path / "diff.html"

        write_report([_record("with space&amp.png", 0.4)], output)

        html = output.read_text(encoding="utf-8")
        assert "before/with%20space%26amp.png" in html
        assert "with space" not in html

    def test_relative_links(self, tmp_path: Path) -> None:
        before = tmp_path / "before"
        output = tmp_path / "out" / "diff.html"

        write_report([_record("a.png", 0.4, root=before)], output, relative_links=True)

        html = output.read_text(encoding="utf-8")
        assert 'src="../before/a.png"' in html

    def test_score_in_row_title(self, tmp_path: Path) -> None:
        output = tmp_path / "diff.html"

        write_report([_record("a.png", 0.25)], output)

        assert 'title="score 0.250000"' in output.read_text(encoding="utf-8")
