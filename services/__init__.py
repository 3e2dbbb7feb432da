"""
animated-image Services

- media_generation: transports, operation polling, result resolution,
  download and the image -> video pipeline
"""

from .media_generation import MediaPipeline, create_transport

__all__ = [
    "MediaPipeline",
    "create_transport",
]
