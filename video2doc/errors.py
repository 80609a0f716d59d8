"""Error types raised by the video2doc pipeline."""


class Video2DocError(Exception):
    """Base class for every error raised by this package."""


class EngineError(Video2DocError):
    """The codec engine could not be started."""


class EngineTimeout(EngineError):
    """An engine command ran past its deadline and was killed."""


class SourceUnreadable(Video2DocError):
    """A requested output file is not present in the engine's file system."""


class RenderingUnavailable(Video2DocError):
    """An encoded frame could not be decoded into a pixel raster."""


class LengthMismatch(Video2DocError, ValueError):
    """Two pixel arrays of different lengths were compared."""


class DurationUnknown(Video2DocError):
    """No duration could be read from the engine's log."""


class UpstreamFetchFailed(Video2DocError):
    """A remote download failed (network error, timeout or non-2xx status)."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class FetchCancelled(Video2DocError):
    """A remote download was aborted through its cancellation signal."""


class CompositionFailed(Video2DocError):
    """A page could not be added to the output document."""
