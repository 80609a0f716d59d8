"""
Codec engine
------------
Thin wrapper around the ffmpeg binary.

Each engine owns a private working directory that acts as its file system:
inputs are written into it by name, commands run with it as the working
directory, and outputs are read back by name. Only one command runs at a
time per engine; stderr is streamed line by line to the registered log
listeners while the command runs.
"""

import sys
import shutil
import tempfile
import threading
import subprocess
import logging
from collections import deque
from pathlib import Path

import imageio_ffmpeg

from video2doc.errors import EngineError, EngineTimeout, SourceUnreadable


log = logging.getLogger(__name__)


def find_ffmpeg(configured=None) -> str:
    """Configured path, else the imageio-ffmpeg bundle, else `ffmpeg` on PATH."""
    if configured:
        return configured
    try:
        path = imageio_ffmpeg.get_ffmpeg_exe()
        log.info(f"Using bundled FFmpeg: {path}")
        return path
    except RuntimeError:
        log.warning("No bundled FFmpeg binary, falling back to PATH ffmpeg")
        return "ffmpeg"


class CodecEngine:

    LOG_TAIL = 40

    def __init__(self, binary=None, workdir=None):
        self.binary = binary or find_ffmpeg()
        if workdir is None:
            self.workdir = Path(tempfile.mkdtemp(prefix="video2doc_"))
            self._owns_workdir = True
        else:
            self.workdir = Path(workdir)
            self.workdir.mkdir(parents=True, exist_ok=True)
            self._owns_workdir = False

        self._lock = threading.Lock()
        self._listeners = []
        self._proc = None
        self.last_log = deque(maxlen=self.LOG_TAIL)

    # ── log listeners ─────────────────────────────────────────────────────
    def on_log(self, listener):
        self._listeners.append(listener)

    def off_log(self, listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, line: str):
        self.last_log.append(line)
        for listener in list(self._listeners):
            listener(line)

    # ── file system ───────────────────────────────────────────────────────
    def path(self, name: str) -> Path:
        if not name or Path(name).name != name:
            raise ValueError(f"Engine file names must be bare names: {name!r}")
        return self.workdir / name

    def write_file(self, name: str, data: bytes) -> Path:
        target = self.path(name)
        target.write_bytes(data)
        return target

    def copy_in(self, name: str, source) -> Path:
        target = self.path(name)
        shutil.copyfile(source, target)
        return target

    def read_file(self, name: str) -> bytes:
        try:
            return self.path(name).read_bytes()
        except OSError as exc:
            raise SourceUnreadable(f"Cannot read {name}: {exc}") from exc

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def list_files(self, pattern="*") -> list:
        return sorted(p.name for p in self.workdir.glob(pattern) if p.is_file())

    # ── commands ──────────────────────────────────────────────────────────
    def exec(self, args, timeout=None) -> int:
        """
        Run the binary with `args` inside the working directory and return
        its exit code. Raises EngineTimeout if `timeout` seconds pass first.
        """
        cmd = [self.binary, *args]
        with self._lock:
            log.debug(f"exec: {' '.join(cmd)}")
            self.last_log.clear()
            try:
                proc = subprocess.Popen(
                    cmd,
                    cwd=self.workdir,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    text=True,
                    errors="replace",
                    creationflags=(subprocess.CREATE_NO_WINDOW
                                   if sys.platform == "win32" else 0),
                )
            except OSError as exc:
                raise EngineError(f"Cannot start {self.binary}: {exc}") from exc
            self._proc = proc

            timed_out = threading.Event()
            timer = None
            if timeout is not None:
                def _kill():
                    timed_out.set()
                    proc.kill()
                timer = threading.Timer(timeout, _kill)
                timer.daemon = True
                timer.start()

            try:
                for line in proc.stderr:
                    self._emit(line.rstrip("\n"))
                returncode = proc.wait()
            finally:
                if timer is not None:
                    timer.cancel()
                if proc.poll() is None:
                    proc.kill()
                    proc.wait()
                proc.stderr.close()
                self._proc = None

            if timed_out.is_set():
                raise EngineTimeout(
                    f"{Path(self.binary).name} did not finish within {timeout:g}s")
            return returncode

    def terminate(self):
        """Kill the running command, if any. Safe to call from a log listener."""
        proc = self._proc
        if proc is not None and proc.poll() is None:
            log.debug("Terminating running command")
            proc.kill()

    def log_tail(self, lines=10) -> str:
        return "\n".join(list(self.last_log)[-lines:])

    # ── lifecycle ─────────────────────────────────────────────────────────
    def close(self):
        if self._owns_workdir and self.workdir.is_dir():
            shutil.rmtree(self.workdir, ignore_errors=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
