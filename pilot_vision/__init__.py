"""Vision layer: coordinates, screen signatures, prompts and analysis calls."""

from .analysis import VisualAnalysisAdapter, normalize_payload, parse_response
from .backends import AnalysisError, AnthropicVisionClient, OpenRouterVisionClient, build_backend
from .coords import PercentPoint, PixelPoint, percent_to_pixel, region_to_percent
from .signature import ScreenshotSignature, SignatureTracker, has_changed, signature_of

__all__ = [
    "AnalysisError",
    "AnthropicVisionClient",
    "OpenRouterVisionClient",
    "PercentPoint",
    "PixelPoint",
    "ScreenshotSignature",
    "SignatureTracker",
    "VisualAnalysisAdapter",
    "build_backend",
    "has_changed",
    "normalize_payload",
    "parse_response",
    "percent_to_pixel",
    "region_to_percent",
]
