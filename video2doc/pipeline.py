"""
Frame sampling and de-duplication
---------------------------------
Pass 1 - one ffmpeg command writes a frame every `interval` seconds to
         output_0001.png, output_0002.png, ...
Pass 2 - the frames are read back in order; each one is compared against
         the last frame that was kept and dropped if the RMS difference is
         below the discard threshold.
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from video2doc.difference import rms_diff
from video2doc.errors import RenderingUnavailable, SourceUnreadable
from video2doc.normalize import NormalizedFrame, normalize_frame


log = logging.getLogger(__name__)

SAMPLING_INTERVAL = 10.0
DISCARD_THRESHOLD = 5.0
FRAME_PATTERN = "output_%04d.png"


# ════════════════════════════════════════════════════════════════════════════
#  MANIFEST
# ════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FrameManifest:
    """Which numbered outputs the extraction command is expected to write."""
    expected: int
    pattern: str = FRAME_PATTERN

    @classmethod
    def for_duration(cls, duration: float, interval: float = SAMPLING_INTERVAL,
                     pattern: str = FRAME_PATTERN) -> "FrameManifest":
        if interval <= 0:
            raise ValueError("interval must be > 0")
        expected = int(math.floor(duration / interval)) if duration > 0 else 0
        return cls(expected=expected, pattern=pattern)

    def name_for(self, ordinal: int) -> str:
        return self.pattern % ordinal

    def ordinals(self):
        return range(1, self.expected + 1)

    def missing(self, engine) -> list:
        return [i for i in self.ordinals() if not engine.exists(self.name_for(i))]


def extraction_command(input_name: str, interval: float,
                       manifest: FrameManifest) -> list:
    return [
        "-hide_banner", "-y",
        "-i", input_name,
        "-vf", f"fps=1/{interval:g}",
        manifest.pattern,
    ]


# ════════════════════════════════════════════════════════════════════════════
#  DE-DUPLICATION
# ════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class KeptFrame:
    ordinal: int
    frame: NormalizedFrame

    @property
    def width(self):
        return self.frame.width

    @property
    def height(self):
        return self.frame.height

    @property
    def image(self):
        return self.frame.image


class Deduplicator:
    """
    Keep/discard decisions against a single baseline: the last kept frame.

    A frame whose pixel array length differs from the baseline (new
    dimensions) cannot be compared and is always kept.
    """

    def __init__(self, threshold: float = DISCARD_THRESHOLD):
        self.threshold = threshold
        self.baseline: Optional[NormalizedFrame] = None

    def offer(self, frame: NormalizedFrame, ordinal=None) -> bool:
        if self.baseline is not None:
            if len(frame.pixels) != len(self.baseline.pixels):
                log.info(f"Frame {ordinal} has different dimensions "
                         f"({frame.width}x{frame.height}), updating baseline")
            else:
                score = rms_diff(self.baseline.pixels, frame.pixels)
                if score < self.threshold:
                    log.debug(f"Skipping frame {ordinal}: rms={score:.2f} "
                              f"< {self.threshold:g}")
                    return False
                log.debug(f"Keeping frame {ordinal}: rms={score:.2f}")
        self.baseline = frame
        return True


@dataclass
class SamplingResult:
    manifest: FrameManifest
    frames: list = field(default_factory=list)
    frames_read: int = 0
    discarded: int = 0
    stop_reason: str = "complete"
    engine_returncode: Optional[int] = None

    @property
    def ordinals(self):
        return [kept.ordinal for kept in self.frames]


def collect_frames(read: Callable[[str], bytes], manifest: FrameManifest,
                   threshold: float = DISCARD_THRESHOLD,
                   result: Optional[SamplingResult] = None) -> SamplingResult:
    """
    Read, normalize and de-duplicate the manifest's outputs in order.

    Iteration stops at the first output that cannot be read or decoded;
    frames kept before that point are returned.
    """
    if result is None:
        result = SamplingResult(manifest=manifest)
    dedup = Deduplicator(threshold)

    for i in manifest.ordinals():
        name = manifest.name_for(i)
        try:
            data = read(name)
        except SourceUnreadable as exc:
            log.info(f"Stopping at frame {i}: {exc}")
            result.stop_reason = f"missing {name}"
            break
        try:
            frame = normalize_frame(data)
        except RenderingUnavailable as exc:
            log.warning(f"Stopping at frame {i}: {exc}")
            result.stop_reason = f"undecodable {name}"
            break

        result.frames_read += 1
        if dedup.offer(frame, ordinal=i):
            result.frames.append(KeptFrame(ordinal=i, frame=frame))
        else:
            result.discarded += 1

    log.info(f"Deduplication: {result.frames_read} frames in | "
             f"{len(result.frames)} kept | {result.discarded} discarded")
    return result


def sample_frames(engine, input_name: str, duration: float,
                  interval: float = SAMPLING_INTERVAL,
                  threshold: float = DISCARD_THRESHOLD,
                  pattern: str = FRAME_PATTERN) -> SamplingResult:
    """Extract one frame per `interval` seconds and return the distinct ones."""
    manifest = FrameManifest.for_duration(duration, interval, pattern)
    result = SamplingResult(manifest=manifest)
    if manifest.expected == 0:
        log.warning(f"Duration {duration:.2f}s is shorter than one "
                    f"{interval:g}s interval, nothing to sample")
        result.stop_reason = "no candidates"
        return result

    log.info(f"Extracting up to {manifest.expected} frames from {input_name} "
             f"(one every {interval:g}s)")
    result.engine_returncode = engine.exec(
        extraction_command(input_name, interval, manifest))
    if result.engine_returncode != 0:
        log.warning(f"FFmpeg exited with code {result.engine_returncode}; "
                    f"using whatever frames were written")

    missing = manifest.missing(engine)
    if missing:
        log.warning(f"{len(missing)} of {manifest.expected} expected frames "
                    f"were not written (first missing: {missing[0]})")

    return collect_frames(engine.read_file, manifest, threshold, result)
