"""
Command-line entry point.

Examples:
  video2doc lecture.mp4
  video2doc lecture.mp4 -o slides.pdf --threshold 8
  video2doc https://example.com/talk.mp4 --save-images talk_slides
  video2doc "https://www.youtube.com/watch?v=..." --hosted
"""

import argparse
import logging
import sys
from pathlib import Path

from video2doc.assemble import export_images
from video2doc.config import load_config, setup_logging
from video2doc.core import Status, convert
from video2doc.fetch import is_url


log = logging.getLogger(__name__)

URL_OUTPUT_NAME = "video2doc-output.pdf"


def default_output(source) -> Path:
    if is_url(source):
        return Path(URL_OUTPUT_NAME)
    path = Path(source)
    return path.parent / f"{path.stem}_extracted-slides.pdf"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="video2doc",
        description="Convert a presentation video into a PDF of its distinct slides.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n", 2)[2],
    )
    parser.add_argument("source", help="Video file path or http(s) URL")
    parser.add_argument(
        "--output", "-o",
        help="Output PDF (default: <video>_extracted-slides.pdf next to the video)")
    parser.add_argument(
        "--hosted", action="store_true",
        help="SOURCE is a video-hosting page; resolve its download link first")
    parser.add_argument(
        "--interval", "-i", type=float,
        help="Seconds between sampled frames (default: 10)")
    parser.add_argument(
        "--threshold", "-t", type=float,
        help="RMS difference (0-255) below which a frame is a duplicate (default: 5)")
    parser.add_argument("--config", "-c", help="YAML config file")
    parser.add_argument(
        "--save-images", metavar="DIR",
        help="Also write the kept frames as PNG files into DIR")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_config(args.config)
    if args.interval is not None:
        settings.sampling.interval_seconds = args.interval
    if args.threshold is not None:
        settings.sampling.discard_threshold = args.threshold
    if args.log_level:
        settings.logging.level = args.log_level
    setup_logging(settings)

    result = convert(args.source, settings=settings, hosted=args.hosted)

    if result.pdf:
        output = Path(args.output) if args.output else default_output(args.source)
        output.write_bytes(result.pdf)
        print(f"Saved {result.pages} page(s) to {output}")
    if args.save_images:
        if result.frames:
            export_images(result.frames, args.save_images)
        else:
            log.warning("No frames to save as images")

    if result.status is not Status.OK:
        print(f"{result.status.value}: {result.reason or 'no output'}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
