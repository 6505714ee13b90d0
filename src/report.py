"""Aggregation and HTML report emission.

Records are sorted by descending score and streamed through a Jinja2
template one row at a time. Each record's sides give up their paths as
soon as the row referencing them has been rendered.
"""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader

from src.records import DiffRecord

TEMPLATES_DIR = Path(__file__).parent / "templates"
REPORT_TEMPLATE = "diff_report.html.j2"


def sort_records(records: Iterable[DiffRecord]) -> list[DiffRecord]:
    """Order records from most to least different.

    Equal scores are ordered by baseline path so reports are
    reproducible.

    Raises:
        ValueError: If any record has not been scored
    """
    records = list(records)
    unscored = [r for r in records if r.score is None]
    if unscored:
        msg = f"{len(unscored)} records have no score (join barrier not reached?)"
        raise ValueError(msg)
    return sorted(records, key=lambda r: (-r.score, str(r.baseline.path)))


def _link(path: Path, base_dir: Path | None) -> str:
    """Turn an image path into a URL usable from the report."""
    target = str(path) if base_dir is None else os.path.relpath(path, base_dir)
    return quote(Path(target).as_posix())


def _rows(records: list[DiffRecord], base_dir: Path | None) -> Iterator[dict[str, object]]:
    for record in records:
        yield {
            "baseline": _link(record.baseline.path, base_dir),
            "comparison": _link(record.comparison.path, base_dir),
            "score": record.score,
        }
        # Resumed only after the template has rendered the row above
        record.baseline.release()
        record.comparison.release()


def write_report(
    records: list[DiffRecord],
    output: Path,
    relative_links: bool = False,
    title: str = "Image diff",
) -> int:
    """Render sorted records into a single HTML document.

    Args:
        records: Scored records, already sorted
        output: Path of the HTML file to write
        relative_links: Make image links relative to the report's directory
            instead of using the paths as given
        title: Document title

    Returns:
        Number of rows written
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
    )
    template = env.get_template(REPORT_TEMPLATE)

    base_dir = output.parent.absolute() if relative_links else None
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        template.stream(rows=_rows(records, base_dir), title=title).dump(f)

    return len(records)
