"""
Duration probe
--------------
Runs ffmpeg with an input and no output. ffmpeg prints the container
metadata, including a `Duration: HH:MM:SS.ss` line, and then complains that
no output file was given; that complaint is the end-of-metadata marker.
"""

import re
import threading
import logging

from video2doc.errors import DurationUnknown, EngineTimeout


log = logging.getLogger(__name__)

DEFAULT_MARKER = "At least one output file must be specified"
DEFAULT_TIMEOUT = 30.0

_DURATION = re.compile(r"Duration:\s*(\d{2}):(\d{2}):(\d{2}(?:\.\d*)?)")


def parse_duration(text: str) -> float:
    """Seconds from the first `Duration: HH:MM:SS.ss` in text."""
    m = _DURATION.search(text)
    if not m:
        raise DurationUnknown("No 'Duration: HH:MM:SS.ss' entry in engine log")
    hours, minutes, seconds = (float(g) for g in m.groups())
    return hours * 3600 + minutes * 60 + seconds


def read_metadata_log(engine, input_name, marker=DEFAULT_MARKER,
                      timeout=DEFAULT_TIMEOUT) -> str:
    """
    Run the metadata-only command and return the log text seen up to and
    including `marker`. Seeing the marker terminates the command; otherwise
    it runs until it exits or `timeout` passes. The listener is always
    removed before returning.
    """
    lines = []
    done = threading.Event()

    def listener(line):
        if done.is_set():
            return
        lines.append(line)
        if marker in line:
            done.set()
            engine.terminate()

    engine.on_log(listener)
    try:
        engine.exec(["-hide_banner", "-i", input_name], timeout=timeout)
    except EngineTimeout as exc:
        log.warning(f"Duration probe cut short: {exc}")
    finally:
        engine.off_log(listener)

    if not done.is_set():
        log.debug(f"Probe log for {input_name} ended without the marker")
    return "\n".join(lines)


def probe_duration(engine, input_name, marker=DEFAULT_MARKER,
                   timeout=DEFAULT_TIMEOUT, strict=False) -> float:
    """
    Total duration of `input_name` in seconds.

    Returns 0.0 when no duration can be found, which callers must read as
    "unknown". With strict=True, DurationUnknown is raised instead.
    """
    text = read_metadata_log(engine, input_name, marker=marker, timeout=timeout)
    try:
        duration = parse_duration(text)
    except DurationUnknown:
        log.warning(f"Could not read the duration of {input_name}")
        if strict:
            raise
        return 0.0
    log.info(f"Duration of {input_name}: {duration:.2f}s")
    return duration
