"""
animated-image CLI Tools

Helpers behind main.py:
- output: timestamped paths, animation prompt fallback, JSON result line
"""

from .output import emit_result, guess_animation_prompt, timestamped_path

__all__ = ["emit_result", "guess_animation_prompt", "timestamped_path"]
