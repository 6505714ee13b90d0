"""Per-image resource handle used on each half of a pair.

A :class:`Side` moves through three ownership stages:

1. ``open()`` acquires the file handle and a read-only memory map of the
   encoded bytes (traversal thread).
2. ``decode()`` fills the decoded samples; ``release_buffers()`` drops the
   mapping, the handle and the samples but keeps ``path`` (worker).
3. ``release()`` drops the path once the report row has been written
   (report emitter).

Only one stage touches a Side at any time, so no locking is needed.
"""

import mmap
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import numpy as np

from src.codec import decode_rgba16


@dataclass
class Side:
    """One image's on-disk identity, encoded bytes and decoded samples."""

    root: Path
    path: Path | None
    file_handle: BinaryIO | None = field(default=None, repr=False, compare=False)
    encoded: mmap.mmap | bytes | None = field(default=None, repr=False, compare=False)
    encoded_size: int = 0
    decoded: np.ndarray | None = field(default=None, repr=False, compare=False)

    @property
    def decoded_size(self) -> int:
        """Byte length of the decoded samples (0 when not decoded)."""
        return 0 if self.decoded is None else int(self.decoded.nbytes)

    @property
    def is_open(self) -> bool:
        return self.encoded is not None

    def open(self) -> None:
        """Open the file and map its encoded bytes read-only.

        Empty files cannot be memory-mapped; they are represented by an
        empty ``bytes`` object instead.

        Raises:
            OSError: If the file cannot be opened or mapped
        """
        if self.path is None:
            msg = "Side has no path to open"
            raise ValueError(msg)

        fh = open(self.path, "rb")
        try:
            size = self.path.stat().st_size
            if size == 0:
                encoded: mmap.mmap | bytes = b""
            else:
                encoded = mmap.mmap(fh.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as e:
            fh.close()
            msg = f"Cannot map {self.path}: {e}"
            raise OSError(msg) from e

        self.file_handle = fh
        self.encoded = encoded
        self.encoded_size = len(encoded)

    def same_bytes(self, other: "Side") -> bool:
        """Return True if both sides map byte-identical encoded content."""
        if self.encoded is None or other.encoded is None:
            msg = "Both sides must be open before comparing bytes"
            raise ValueError(msg)
        if self.encoded_size != other.encoded_size:
            return False
        with memoryview(self.encoded) as a, memoryview(other.encoded) as b:
            return a == b

    def decode(self) -> np.ndarray:
        """Decode the mapped bytes into 16-bit RGBA samples."""
        if self.encoded is None:
            msg = f"{self.path} is not open"
            raise ValueError(msg)
        self.decoded = decode_rgba16(self.encoded)
        return self.decoded

    def release_buffers(self) -> None:
        """Release samples, mapping and file handle; keep the path."""
        self.decoded = None
        if isinstance(self.encoded, mmap.mmap):
            self.encoded.close()
        self.encoded = None
        self.encoded_size = 0
        if self.file_handle is not None:
            self.file_handle.close()
            self.file_handle = None

    def release(self) -> None:
        """Release everything, including ownership of the path."""
        self.release_buffers()
        self.path = None
