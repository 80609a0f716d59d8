"""
Test Configuration
==================

Shared fixtures: an in-memory stand-in for the codec engine and a factory
for small encoded PNG frames.
"""

import io
import random
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image

from video2doc.config import Settings
from video2doc.errors import SourceUnreadable


class FakeEngine:
    """
    Records commands, replays canned log lines to listeners on every exec,
    and serves files from a dict.
    """

    def __init__(self, files=None, log_lines=None, returncode=0, exec_error=None,
                 workdir=None):
        self.files = dict(files or {})
        self.log_lines = list(log_lines or [])
        self.returncode = returncode
        self.exec_error = exec_error
        self.workdir = workdir
        self.commands = []
        self.reads = []
        self.listeners = []
        self.terminated = False

    def on_log(self, listener):
        self.listeners.append(listener)

    def off_log(self, listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def exec(self, args, timeout=None):
        self.commands.append(list(args))
        self.terminated = False
        for line in self.log_lines:
            if self.terminated:
                break
            for listener in list(self.listeners):
                listener(line)
        if self.exec_error is not None:
            raise self.exec_error
        return self.returncode

    def terminate(self):
        self.terminated = True

    def read_file(self, name):
        self.reads.append(name)
        if name not in self.files:
            raise SourceUnreadable(f"Cannot read {name}")
        return self.files[name]

    def exists(self, name):
        return name in self.files

    def path(self, name):
        return Path(self.workdir or ".") / name

    def copy_in(self, name, source):
        with open(source, "rb") as f:
            self.files[name] = f.read()


def png_bytes(width=16, height=9, color=(0, 0, 0)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def _png_chunk(ctype, body):
    crc = zlib.crc32(ctype + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + ctype + body + struct.pack(">I", crc)


def broken_png_bytes(width=64, height=64):
    """
    A PNG whose image data is split over two IDAT chunks with the type of
    the second one mangled. The header opens cleanly; decoding fails.
    """
    noise = random.Random(7).randbytes(width * height * 3)
    buf = io.BytesIO()
    Image.frombytes("RGB", (width, height), noise).save(buf, format="PNG")
    data = buf.getvalue()

    head, idat, pos = [], b"", 8
    while pos < len(data):
        (length,) = struct.unpack(">I", data[pos:pos + 4])
        ctype = data[pos + 4:pos + 8]
        body = data[pos + 8:pos + 8 + length]
        pos += 12 + length
        if ctype == b"IDAT":
            idat += body
        elif ctype != b"IEND":
            head.append(_png_chunk(ctype, body))

    half = len(idat) // 2
    return (data[:8] + b"".join(head)
            + _png_chunk(b"IDAT", idat[:half])
            + _png_chunk(b"\x00\x01\x02\x03", idat[half:])
            + _png_chunk(b"IEND", b""))


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def make_broken_png():
    return broken_png_bytes


@pytest.fixture
def fake_engine_factory():
    return FakeEngine


@pytest.fixture
def settings():
    """Default settings, independent of config files and environment."""
    return Settings()


@pytest.fixture
def duration_log():
    return [
        "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':",
        "  Duration: 00:00:40.00, start: 0.000000, bitrate: 212 kb/s",
        "  Stream #0:0(und): Video: h264 (High), yuv420p, 1280x720, 25 fps",
        "At least one output file must be specified",
    ]
