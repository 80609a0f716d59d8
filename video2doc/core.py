"""
End-to-end conversion: source video -> PDF of its distinct slides.

    result = convert("lecture.mp4")
    if result.ok:
        Path("lecture.pdf").write_bytes(result.pdf)
"""

import threading
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

from video2doc.assemble import build_pdf
from video2doc.config import Settings, load_config
from video2doc.engine import CodecEngine, find_ffmpeg
from video2doc.errors import DurationUnknown, SourceUnreadable, Video2DocError
from video2doc.fetch import download, is_url, resolve_hosted_video
from video2doc.pipeline import sample_frames
from video2doc.probe import probe_duration


log = logging.getLogger(__name__)


class Status(str, Enum):
    OK = "OK"
    NO_FRAMES = "NO_FRAMES"
    DURATION_UNKNOWN = "DURATION_UNKNOWN"
    FAILED = "FAILED"


@dataclass
class ConversionResult:
    status: Status
    pdf: Optional[bytes] = field(default=None, repr=False)
    duration: float = 0.0
    expected_frames: int = 0
    frames_read: int = 0
    kept: int = 0
    discarded: int = 0
    pages: int = 0
    stop_reason: str = ""
    error: Optional[str] = None
    frames: list = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def reason(self) -> str:
        return self.error or self.stop_reason


# ════════════════════════════════════════════════════════════════════════════
#  SOURCE LOADING
# ════════════════════════════════════════════════════════════════════════════

def _load_source(engine, source, hosted, settings, cancel_event, progress) -> str:
    """Place the source video in the engine's file system; return its name."""
    if is_url(source):
        url = str(source)
        if hosted:
            progress("Resolving hosted video link …")
            url = resolve_hosted_video(
                url, settings.fetch.hosted_endpoint,
                cancel_event=cancel_event,
                timeout=settings.fetch.timeout_seconds)
        name = "input" + (Path(urlparse(url).path).suffix or ".mp4")
        progress("Downloading video …")
        download(url, engine.path(name),
                 cancel_event=cancel_event,
                 timeout=settings.fetch.timeout_seconds,
                 chunk_size=settings.fetch.chunk_size)
        return name

    if hosted:
        raise SourceUnreadable(f"Hosted sources must be http(s) URLs: {source}")
    path = Path(source)
    if not path.is_file():
        raise SourceUnreadable(f"Video file not found: {source}")
    name = "input" + path.suffix
    engine.copy_in(name, path)
    return name


# ════════════════════════════════════════════════════════════════════════════
#  CONVERSION
# ════════════════════════════════════════════════════════════════════════════

def convert(source, settings: Optional[Settings] = None, engine=None,
            hosted: bool = False, cancel_event=None,
            progress_cb: Optional[Callable[[str], None]] = None) -> ConversionResult:
    """
    Convert a local video file or URL into a PDF.

    Failures are reported through the result's status rather than raised,
    except DurationUnknown when sampling.on_unknown_duration is "error".
    """
    def progress(msg):
        log.info(msg)
        if progress_cb:
            progress_cb(msg)

    own_engine = engine is None
    try:
        if settings is None:
            settings = load_config()
        if own_engine:
            engine = CodecEngine(find_ffmpeg(settings.engine.ffmpeg_path))
        return _convert(engine, source, settings, hosted, cancel_event, progress)
    except DurationUnknown:
        raise
    except Video2DocError as exc:
        log.error(f"Conversion of {source} failed: {exc}")
        return ConversionResult(status=Status.FAILED, error=str(exc))
    except Exception as exc:
        log.exception("Unexpected conversion error")
        return ConversionResult(status=Status.FAILED, error=str(exc))
    finally:
        if own_engine and engine is not None:
            engine.close()


def _convert(engine, source, settings, hosted, cancel_event, progress):
    sampling_cfg = settings.sampling
    name = _load_source(engine, source, hosted, settings, cancel_event, progress)

    progress("Reading video duration …")
    try:
        duration = probe_duration(
            engine, name,
            marker=settings.engine.probe_marker,
            timeout=settings.engine.probe_timeout_seconds,
            strict=True)
    except DurationUnknown as exc:
        if sampling_cfg.on_unknown_duration == "error":
            raise
        return ConversionResult(status=Status.DURATION_UNKNOWN, error=str(exc))

    progress(f"Extracting one frame every {sampling_cfg.interval_seconds:g}s …")
    sampled = sample_frames(
        engine, name, duration,
        interval=sampling_cfg.interval_seconds,
        threshold=sampling_cfg.discard_threshold,
        pattern=sampling_cfg.frame_pattern)

    result = ConversionResult(
        status=Status.NO_FRAMES,
        duration=duration,
        expected_frames=sampled.manifest.expected,
        frames_read=sampled.frames_read,
        kept=len(sampled.frames),
        discarded=sampled.discarded,
        stop_reason=sampled.stop_reason,
        frames=sampled.frames,
    )
    if not sampled.frames:
        progress("No frames could be extracted.")
        return result

    progress(f"Building PDF from {len(sampled.frames)} slide(s) …")
    document = build_pdf(sampled.frames)
    result.pdf = document.data
    result.pages = document.page_count
    result.status = Status.OK
    progress(f"Done, {document.page_count} page(s).")
    return result


# ════════════════════════════════════════════════════════════════════════════
#  BACKGROUND JOBS
# ════════════════════════════════════════════════════════════════════════════

class ConversionJob:
    """Handle on a conversion running in a background thread."""

    def __init__(self, thread: threading.Thread, cancel_event: threading.Event):
        self._thread = thread
        self._cancel_event = cancel_event

    def cancel(self):
        """Abort an in-flight download. A running ffmpeg command is left to finish."""
        self._cancel_event.set()

    def join(self, timeout=None):
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()


def start_conversion(source, done_cb: Callable[[ConversionResult], None],
                     **kwargs) -> ConversionJob:
    """Run convert() on a daemon thread and hand the result to done_cb."""
    cancel_event = threading.Event()

    def run():
        try:
            result = convert(source, cancel_event=cancel_event, **kwargs)
        except Video2DocError as exc:
            result = ConversionResult(status=Status.FAILED, error=str(exc))
        except Exception as exc:
            log.exception("Background conversion failed")
            result = ConversionResult(status=Status.FAILED, error=str(exc))
        done_cb(result)

    thread = threading.Thread(target=run, daemon=True)
    job = ConversionJob(thread, cancel_event)
    thread.start()
    return job
