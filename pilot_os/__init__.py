"""OS layer for Quiz Pilot.

This package covers configuration loading, full-screen captures that are
passed to the vision pipeline, and raw pointer/keyboard driving for the
solver's action executor.
"""

from .capture import CaptureError, CaptureManager, CaptureResult
from .config import CaptureConfig, SolverConfig, VideoConfig, VisionConfig, load_configs
from .input_handler import AutomationError, InputConfig, InputHandler

__all__ = [
    "AutomationError",
    "CaptureConfig",
    "CaptureError",
    "CaptureManager",
    "CaptureResult",
    "InputConfig",
    "InputHandler",
    "SolverConfig",
    "VideoConfig",
    "VisionConfig",
    "load_configs",
]
