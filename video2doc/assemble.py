"""Build the output PDF, one page per kept frame at the frame's own size."""

import io
import os
import logging
from dataclasses import dataclass, field

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import landscape, portrait
from reportlab.lib.utils import ImageReader

from video2doc.errors import CompositionFailed


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssembledDocument:
    data: bytes = field(repr=False)
    page_sizes: tuple

    @property
    def page_count(self):
        return len(self.page_sizes)


def page_orientation(width, height) -> str:
    return "landscape" if width > height else "portrait"


def build_pdf(frames) -> AssembledDocument:
    """
    `frames` is any ordered sequence of objects with `width`, `height` and
    `image` (a PIL image). One pixel maps to one PDF point; the image is
    drawn at the page origin with no scaling or margins. A frame that cannot
    be placed is logged and skipped.
    """
    if not frames:
        raise ValueError("No frames to assemble.")
    log.info(f"Building PDF: {len(frames)} slides")

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pageCompression=1)
    sizes = []
    for i, frame in enumerate(frames, start=1):
        try:
            iw, ih = frame.width, frame.height
            reader = ImageReader(frame.image)
            orient = landscape if page_orientation(iw, ih) == "landscape" else portrait
            c.setPageSize(orient((iw, ih)))
            c.drawImage(reader, 0, 0, iw, ih)
            c.showPage()
            sizes.append((iw, ih))
        except Exception as exc:
            log.warning(f"Skipping page {i}: {exc}")
            continue

    if not sizes:
        raise CompositionFailed("None of the frames could be placed on a page")
    c.save()
    log.info(f"PDF built: {len(sizes)} page(s)")
    return AssembledDocument(data=buf.getvalue(), page_sizes=tuple(sizes))


def export_images(frames, dest_folder) -> list:
    """Write frames into dest_folder as slide_001.png, slide_002.png, ..."""
    if not frames:
        raise ValueError("No frames to export.")
    os.makedirs(dest_folder, exist_ok=True)
    log.info(f"Exporting {len(frames)} images -> {dest_folder}")
    written = []
    for i, frame in enumerate(frames, start=1):
        dest = os.path.join(dest_folder, f"slide_{i:03d}.png")
        frame.image.save(dest)
        written.append(dest)
    log.info("Image export complete")
    return written
