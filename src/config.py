"""Run configuration for the image tree diff.

Configuration can be built directly, loaded from a JSON file, or
assembled by the command-line script from positional arguments and
flags. All paths are kept as given so that the report references the
images exactly the way the user spelled them.
"""

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

DEFAULT_BASELINE_ROOT = "before"
DEFAULT_COMPARISON_ROOT = "after"
DEFAULT_OUTPUT = "diff.html"
DEFAULT_EXTENSION = ".png"

_PATH_FIELDS = ("baseline_root", "comparison_root", "output")
_FLAG_FIELDS = ("relative_links", "skip_unchanged", "strict", "progress")


def normalize_extension(extension: str) -> str:
    """Normalize a file extension to lowercase with a leading dot.

    Args:
        extension: Extension such as ``"png"``, ``".PNG"`` or ``".png"``

    Returns:
        Normalized extension (``".png"``)

    Raises:
        ValueError: If the extension is empty
    """
    ext = extension.strip().lower()
    if not ext or ext == ".":
        msg = f"Invalid image extension: {extension!r}"
        raise ValueError(msg)
    if not ext.startswith("."):
        ext = f".{ext}"
    return ext


@dataclass
class DiffConfig:
    """Configuration for a single baseline-vs-comparison run."""

    baseline_root: Path = Path(DEFAULT_BASELINE_ROOT)
    comparison_root: Path = Path(DEFAULT_COMPARISON_ROOT)
    output: Path = Path(DEFAULT_OUTPUT)
    extension: str = DEFAULT_EXTENSION
    workers: int | None = None
    relative_links: bool = False
    skip_unchanged: bool = False
    strict: bool = False
    progress: bool = False

    def __post_init__(self) -> None:
        self.baseline_root = Path(self.baseline_root)
        self.comparison_root = Path(self.comparison_root)
        self.output = Path(self.output)
        self.extension = normalize_extension(self.extension)
        if self.workers is not None and self.workers < 0:
            msg = f"workers must be >= 0, got {self.workers}"
            raise ValueError(msg)

    @property
    def max_workers(self) -> int:
        """Effective pool size (``0`` means synchronous execution)."""
        if self.workers is None:
            return os.cpu_count() or 1
        return self.workers

    @classmethod
    def from_file(cls, config_path: Path) -> "DiffConfig":
        """Load a run configuration from a JSON file.

        Args:
            config_path: Path to the JSON config file

        Returns:
            DiffConfig instance

        Raises:
            FileNotFoundError: If config file does not exist
            ValueError: If config file has invalid content
        """
        if not config_path.exists():
            msg = f"Diff config not found: {config_path}"
            raise FileNotFoundError(msg)

        with open(config_path) as f:
            data = json.load(f)

        if not isinstance(data, dict):
            msg = f"Diff config must be a JSON object: {config_path}"
            raise ValueError(msg)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiffConfig":
        """Create DiffConfig from a dictionary.

        Unknown keys are rejected so that typos do not silently fall back
        to defaults.

        Args:
            data: Dictionary with any subset of the config fields

        Returns:
            DiffConfig instance

        Raises:
            ValueError: If unknown fields are present or values are invalid
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown diff config fields: {', '.join(unknown)}"
            raise ValueError(msg)

        for name in _PATH_FIELDS:
            if name in data and not isinstance(data[name], str):
                msg = f"{name} must be a path string, got {data[name]!r}"
                raise ValueError(msg)

        if "extension" in data and not isinstance(data["extension"], str):
            msg = f"extension must be a string, got {data['extension']!r}"
            raise ValueError(msg)

        workers = data.get("workers")
        if workers is not None and (isinstance(workers, bool) or not isinstance(workers, int)):
            msg = f"workers must be an integer, got {workers!r}"
            raise ValueError(msg)

        for name in _FLAG_FIELDS:
            if name in data and not isinstance(data[name], bool):
                msg = f"{name} must be true or false, got {data[name]!r}"
                raise ValueError(msg)

        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "DiffConfig":
        """Return a copy with every non-``None`` override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return DiffConfig(**values)
