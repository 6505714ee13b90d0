"""Diff worker: decode both sides of a pair and score their difference.

The score is the mean absolute per-channel difference normalized to
``[0, 1]``::

    score = sum(|a_i - b_i|) / (n_channels * 65535)

where ``n_channels`` counts every channel sample (4 per pixel). Images
whose decoded dimensions differ are incomparable and score ``1.0``.
"""

import numpy as np

from src.codec import MAX_CHANNEL_VALUE
from src.records import DiffRecord

MISMATCH_SCORE = 1.0


def compute_score(a: np.ndarray, b: np.ndarray) -> float:
    """Score two decoded 16-bit RGBA buffers.

    Args:
        a: Baseline samples, shape ``(H, W, 4)``
        b: Comparison samples

    Returns:
        Normalized difference in ``[0, 1]``; ``1.0`` when shapes differ
    """
    if a.shape != b.shape:
        return MISMATCH_SCORE
    if a.size == 0:
        return 0.0

    sad = int(np.abs(a.astype(np.int32) - b.astype(np.int32)).sum(dtype=np.uint64))
    return sad / (a.size * MAX_CHANNEL_VALUE)


def score_pair(record: DiffRecord) -> DiffRecord:
    """Decode and score one dispatched pair.

    Runs on a pool thread (or inline when the pool is unavailable). The
    record's sides are released down to their paths whether or not
    decoding succeeds; decode failures propagate to the caller.

    Args:
        record: Record whose sides are open and byte-different

    Returns:
        The same record with ``score`` populated

    Raises:
        DecodeError: If either side cannot be decoded
    """
    a, b = record.baseline, record.comparison
    try:
        record.score = compute_score(a.decode(), b.decode())
    finally:
        a.release_buffers()
        b.release_buffers()
    return record
