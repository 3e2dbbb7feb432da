"""
Configuration management for animated-image.

Centralizes all configuration including:
- API key and endpoint
- Model selections
- Video output defaults
- Polling cadence and deadline

Configuration is an explicit value. Only the entry point reads the process
environment (via Config.from_env); every component receives a Config.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Optional

TransportKind = Literal["rest", "sdk"]
TRANSPORT_KINDS: tuple[str, ...] = ("rest", "sdk")


@dataclass
class APIConfig:
    """Generative Language API access."""

    google_api_key: str = ""
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: float = 60.0  # seconds, per HTTP round trip


@dataclass
class ModelConfig:
    """Model selection configuration."""

    image_model: str = "gemini-2.5-flash-image"
    video_model: str = "veo-3.1-generate-preview"
    image_temperature: float = 0.6


@dataclass
class VideoDefaults:
    """Default output settings for video jobs."""

    duration_seconds: int = 8
    resolution: str = "720p"  # '720p' | '1080p'
    aspect_ratio: str = "16:9"


@dataclass
class PollingConfig:
    """Operation polling settings (seconds)."""

    poll_interval: float = 7.0
    timeout: float = 15 * 60.0


@dataclass
class Config:
    """Main configuration class."""

    api: APIConfig = field(default_factory=APIConfig)
    models: ModelConfig = field(default_factory=ModelConfig)
    video: VideoDefaults = field(default_factory=VideoDefaults)
    polling: PollingConfig = field(default_factory=PollingConfig)

    transport: TransportKind = "rest"
    output_dir: Path = Path("outputs")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Load configuration from environment variables."""
        env = os.environ if environ is None else environ
        config = cls()

        config.api.google_api_key = env.get("GOOGLE_API_KEY", "")
        config.api.api_base = env.get("GOOGLE_API_BASE", config.api.api_base).rstrip("/")

        config.models.image_model = env.get("IMAGE_MODEL", config.models.image_model)
        config.models.video_model = env.get("VIDEO_MODEL", config.models.video_model)

        if env.get("POLL_INTERVAL_SECONDS"):
            config.polling.poll_interval = float(env["POLL_INTERVAL_SECONDS"])
        if env.get("POLL_TIMEOUT_SECONDS"):
            config.polling.timeout = float(env["POLL_TIMEOUT_SECONDS"])

        config.transport = env.get("MEDIA_TRANSPORT", config.transport).lower()
        if env.get("OUTPUT_DIR"):
            config.output_dir = Path(env["OUTPUT_DIR"])

        return config

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.api.google_api_key:
            issues.append("Missing required env var GOOGLE_API_KEY")

        if self.transport not in TRANSPORT_KINDS:
            issues.append(
                f"Unknown transport '{self.transport}' (expected one of: {', '.join(TRANSPORT_KINDS)})"
            )

        if self.polling.poll_interval <= 0:
            issues.append("Poll interval must be positive")

        if self.polling.timeout <= 0:
            issues.append("Poll timeout must be positive")

        return issues
