#!/usr/bin/env python3
"""
animated-image - Main Entry Point

Generates a still image, animates an image into a video, or both.

Usage:
    # Generate an image
    python main.py image "A wooden ball on a ramp"

    # Animate an existing image
    python main.py video outputs/image-....png "Roll the ball down the ramp"

    # Image, then video, in one run
    python main.py demo "A red flag on a pole" "The flag waves in the wind"

Prints one JSON object: {"status": "ok", "filePath", "mimeType"} on stdout,
or {"status": "error", "message"} on stderr with exit status 1.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from cli.output import (
    DEFAULT_ANIMATION_PROMPT,
    DEFAULT_IMAGE_PROMPT,
    emit_result,
    guess_animation_prompt,
    timestamped_path,
)
from core.config import TRANSPORT_KINDS, Config
from core.errors import MediaGenerationError
from services.media_generation import MediaAsset, MediaPipeline, PipelineResult

# Configure logging (stderr; stdout carries only the JSON result)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("animated_image")


def build_config(args: argparse.Namespace) -> Config:
    """Environment first, then command-line overrides."""
    config = Config.from_env()
    if args.output_dir:
        config.output_dir = Path(args.output_dir)
    if args.transport:
        config.transport = args.transport
    if args.poll_interval is not None:
        config.polling.poll_interval = args.poll_interval
    if args.timeout is not None:
        config.polling.timeout = args.timeout
    return config


def _log_progress(stage: str, message: str):
    logger.info(f"[{stage}] {message}")


async def generate_image(config: Config, prompt: str) -> MediaAsset:
    destination = timestamped_path(config.output_dir, "image", ".png")
    async with MediaPipeline(config, on_progress=_log_progress) as pipeline:
        return await pipeline.generate_image(prompt, destination)


async def generate_video(config: Config, image_path: str, prompt: str) -> MediaAsset:
    destination = timestamped_path(config.output_dir, "video", ".mp4")
    async with MediaPipeline(config, on_progress=_log_progress) as pipeline:
        return await pipeline.generate_video(prompt, image_path, destination)


async def run_demo(config: Config, image_prompt: str, animation_prompt: str) -> MediaAsset:
    image_destination = timestamped_path(config.output_dir, "image", ".png")
    video_destination = timestamped_path(config.output_dir, "video", ".mp4")
    async with MediaPipeline(config, on_progress=_log_progress) as pipeline:
        return await pipeline.run(
            image_prompt,
            animation_prompt,
            image_destination,
            video_destination,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="animated-image - image and image-to-video generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py image "A wooden ball on a ramp, minimalist"
    python main.py video outputs/image-2026-01-01T00-00-00-000Z.png
    python main.py --transport sdk demo
        """,
    )
    parser.add_argument("--output-dir", "-o", help="Output directory (default: $OUTPUT_DIR or ./outputs)")
    parser.add_argument("--transport", choices=TRANSPORT_KINDS, help="Backend: direct REST or google-genai SDK")
    parser.add_argument("--poll-interval", type=float, help="Seconds between status checks")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for the video job")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    image_parser = subparsers.add_parser("image", help="Generate a still image")
    image_parser.add_argument("prompt", nargs="*", help="Image prompt")

    video_parser = subparsers.add_parser("video", help="Animate an image into a video")
    video_parser.add_argument("image_path", help="Path to the first-frame image")
    video_parser.add_argument("prompt", nargs="*", help="Animation prompt")

    demo_parser = subparsers.add_parser("demo", help="Generate an image, then animate it")
    demo_parser.add_argument("image_prompt", nargs="?", default=DEFAULT_IMAGE_PROMPT)
    demo_parser.add_argument("animation_prompt", nargs="?", default=DEFAULT_ANIMATION_PROMPT)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()
    config = build_config(args)

    issues = config.validate()
    if issues:
        emit_result(PipelineResult.failure("; ".join(issues)))
        return 1

    if args.command == "image":
        prompt = " ".join(args.prompt).strip() or DEFAULT_IMAGE_PROMPT
        job = generate_image(config, prompt)
    elif args.command == "video":
        prompt = " ".join(args.prompt).strip() or guess_animation_prompt(args.image_path)
        job = generate_video(config, args.image_path, prompt)
    else:
        job = run_demo(config, args.image_prompt, args.animation_prompt)

    try:
        asset = asyncio.run(job)
    except (MediaGenerationError, OSError, ValueError) as e:
        logger.error(f"Generation failed: {e}")
        emit_result(PipelineResult.failure(str(e)))
        return 1

    emit_result(PipelineResult.ok(asset))
    return 0


if __name__ == "__main__":
    sys.exit(main())
