"""Configuration structures shared by the capture, vision and solver layers.

Values originate from `config.yaml` (optional). Anything missing falls back to
the dataclass defaults below, so an absent file yields a fully usable setup.
Durations are expressed in seconds unless the field name says otherwise.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml


@dataclass(slots=True)
class CaptureValidationConfig:
    """Validation thresholds to guard against blank or uniform captures."""

    min_mean_luminance: float = 5.0
    min_luminance_stddev: float = 1.5


@dataclass(slots=True)
class RetentionConfig:
    """How many saved frames to keep on disk."""

    max_captures: int = 200


@dataclass(slots=True)
class CaptureConfig:
    """Monitor selection, frame validation and optional frame saving."""

    monitor: int = 1  # mss monitor index; 0 is the union of all monitors
    output_dir: Path = Path("captures")
    save_captures: bool = False
    validation: CaptureValidationConfig = field(default_factory=CaptureValidationConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)


@dataclass(slots=True)
class VisionConfig:
    """Vision provider selection and request parameters."""

    provider: str = "openrouter"
    model: str = "google/gemini-2.5-flash"
    endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    request_timeout_s: int = 60
    max_tokens: int = 2048
    # Providers allowed to drive the mouse/keyboard; everything else runs read-only
    automation_safe_providers: Tuple[str, ...] = ("openrouter",)

    def automation_safe(self) -> bool:
        return self.provider in self.automation_safe_providers


@dataclass(slots=True)
class VideoConfig:
    """Pacing of the video wait monitor."""

    poll_interval_s: float = 5.0
    check_interval_s: float = 15.0
    jiggle_interval_s: float = 10.0
    min_wait_s: float = 5.0
    end_buffer_s: float = 2.0
    default_duration_s: float = 60.0


@dataclass(slots=True)
class SolverConfig:
    """State machine pacing, thresholds and output locations."""

    interval_ms: int = 2000
    language: str = "en"
    memory_dir: Path = Path("memory")
    logs_dir: Path = Path("logs")
    click_delay_s: float = 0.4
    post_action_delay_s: float = 1.5
    completion_delay_s: float = 2.0
    max_unchanged_before_stuck: int = 3
    jiggle_min_interval_s: float = 5.0
    position_validation: bool = True
    max_position_drift: float = 15.0
    max_consecutive_errors: int = 5  # 0 disables the ceiling
    event_log: bool = True
    video: VideoConfig = field(default_factory=VideoConfig)


def load_configs(path: Optional[Path] = None) -> Tuple[CaptureConfig, VisionConfig, SolverConfig]:
    """Load capture, vision, and solver configuration from YAML, falling back to defaults."""

    cfg_path = path or Path("config.yaml")
    capture_cfg = CaptureConfig()
    vision_cfg = VisionConfig()
    solver_cfg = SolverConfig()

    if not cfg_path.exists():
        return capture_cfg, vision_cfg, solver_cfg

    with cfg_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    _apply_capture_config(capture_cfg, raw.get("capture", {}))
    _apply_vision_config(vision_cfg, raw.get("vision", {}))
    _apply_solver_config(solver_cfg, raw.get("solver", {}))

    return capture_cfg, vision_cfg, solver_cfg


def _apply_capture_config(config: CaptureConfig, data: Dict) -> None:
    if not data:
        return

    if "monitor" in data:
        config.monitor = int(data["monitor"])

    output_dir = data.get("output_dir")
    if output_dir:
        config.output_dir = Path(str(output_dir))

    if "save_captures" in data:
        config.save_captures = bool(data["save_captures"])

    validation_data = data.get("validation") or {}
    if validation_data:
        if "min_mean_luminance" in validation_data:
            config.validation.min_mean_luminance = float(validation_data["min_mean_luminance"])
        if "min_luminance_stddev" in validation_data:
            config.validation.min_luminance_stddev = float(validation_data["min_luminance_stddev"])

    retention_data = data.get("retention") or {}
    if retention_data and "max_captures" in retention_data:
        config.retention.max_captures = int(retention_data["max_captures"])


def _apply_vision_config(config: VisionConfig, data: Dict) -> None:
    if not data:
        return

    if "provider" in data:
        config.provider = str(data["provider"]).strip().lower()

    if "model" in data:
        config.model = str(data["model"])

    if "endpoint" in data:
        config.endpoint = str(data["endpoint"])

    if "request_timeout_s" in data:
        config.request_timeout_s = int(data["request_timeout_s"])

    if "max_tokens" in data:
        config.max_tokens = int(data["max_tokens"])

    safe = data.get("automation_safe_providers")
    if isinstance(safe, (list, tuple)):
        config.automation_safe_providers = tuple(str(p).strip().lower() for p in safe)


def _apply_solver_config(config: SolverConfig, data: Dict) -> None:
    if not data:
        return

    if "interval_ms" in data:
        config.interval_ms = int(data["interval_ms"])

    if "language" in data:
        config.language = str(data["language"]).strip().lower()

    if "memory_dir" in data:
        config.memory_dir = Path(str(data["memory_dir"]))

    if "logs_dir" in data:
        config.logs_dir = Path(str(data["logs_dir"]))

    for name in (
        "click_delay_s",
        "post_action_delay_s",
        "completion_delay_s",
        "jiggle_min_interval_s",
        "max_position_drift",
    ):
        if name in data:
            setattr(config, name, float(data[name]))

    if "max_unchanged_before_stuck" in data:
        config.max_unchanged_before_stuck = int(data["max_unchanged_before_stuck"])

    if "max_consecutive_errors" in data:
        config.max_consecutive_errors = int(data["max_consecutive_errors"])

    if "position_validation" in data:
        config.position_validation = bool(data["position_validation"])

    if "event_log" in data:
        config.event_log = bool(data["event_log"])

    video_data = data.get("video") or {}
    for name in (
        "poll_interval_s",
        "check_interval_s",
        "jiggle_interval_s",
        "min_wait_s",
        "end_buffer_s",
        "default_duration_s",
    ):
        if name in video_data:
            setattr(config.video, name, float(video_data[name]))


__all__ = [
    "CaptureValidationConfig",
    "RetentionConfig",
    "CaptureConfig",
    "VisionConfig",
    "VideoConfig",
    "SolverConfig",
    "load_configs",
]
