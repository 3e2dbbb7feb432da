"""
Output helpers for the command-line entry point.

- Timestamped output paths (callers keep destinations unique per run)
- Animation prompt fallback when none is given
- The single JSON result line printed per invocation
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from services.media_generation.models import PipelineResult

DEFAULT_IMAGE_PROMPT = "A wooden ball on a ramp, clean primary colors, minimalist, clean lines."
DEFAULT_ANIMATION_PROMPT = "Animate the scene to show the wooden ball rolling down the ramp."

# Filename keyword -> motion. First match wins.
ANIMATION_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("ball",), "Animate the scene to show the ball rolling naturally across the surface."),
    (("child", "person"), "Animate the scene to show the subject running smoothly forward with natural motion."),
    (("car",), "Animate the scene to show the car moving forward along the road."),
    (("flag",), "Animate the scene to show the flag waving gently in the wind."),
)
FALLBACK_ANIMATION_PROMPT = (
    "Animate the scene to introduce a subtle, natural movement consistent with the image context."
)


def file_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp safe for filenames, e.g. 2026-10-19T08-30-00-123Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3] + "Z"


def timestamped_path(
    output_dir: Union[str, Path],
    prefix: str,
    suffix: str,
    now: Optional[datetime] = None,
) -> Path:
    return Path(output_dir) / f"{prefix}-{file_timestamp(now)}{suffix}"


def guess_animation_prompt(image_path: Union[str, Path]) -> str:
    """Pick an obvious motion from keywords in the image filename."""
    name = Path(image_path).name.lower()
    for keywords, prompt in ANIMATION_HINTS:
        if any(keyword in name for keyword in keywords):
            return prompt
    return FALLBACK_ANIMATION_PROMPT


def emit_result(result: PipelineResult):
    """Print the result JSON: success on stdout, failure on stderr."""
    if result.status == "ok":
        print(result.to_json(), file=sys.stdout)
    else:
        print(result.to_json(indent=None), file=sys.stderr)
