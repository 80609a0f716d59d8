"""
video2doc
=========

Turns a slide-style presentation video into a PDF of its distinct slides:
one frame is sampled every few seconds, near-duplicates of the last kept
frame are dropped, and each remaining frame becomes a page of its own size.

Example:
    from video2doc import convert

    result = convert("lecture.mp4")
    print(result.status, result.pages)
"""

from video2doc.core import ConversionResult, Status, convert, start_conversion

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConversionResult",
    "Status",
    "convert",
    "start_conversion",
]
