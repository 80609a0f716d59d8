import numpy as np

from video2doc.errors import LengthMismatch


def _as_uint8(data) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(data, dtype=np.uint8)
    return np.asarray(data, dtype=np.uint8).ravel()


def rms_diff(a, b) -> float:
    """Root-mean-square of the per-byte differences of two equal-length arrays."""
    a = _as_uint8(a)
    b = _as_uint8(b)
    if a.size != b.size:
        raise LengthMismatch(
            f"Cannot compare pixel arrays of length {a.size} and {b.size}")
    if a.size == 0:
        return 0.0
    diff = a.astype(np.int32) - b.astype(np.int32)
    return float(np.sqrt(np.mean(diff * diff)))
