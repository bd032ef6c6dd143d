"""
Rendering - the ffmpeg execution boundary, progress events and strategies.
"""

from vedit.render.ffmpeg import FFmpegRunner, MediaInfo, get_media_info, check_ffmpeg
from vedit.render.progress import ProgressTracker, RenderEvent, RenderEventType
from vedit.render.strategies import (
    AuthoritativeStrategy,
    FallbackChain,
    PassthroughStrategy,
    PreviewStrategy,
    RenderStrategy,
    StrategyOutcome,
)

__all__ = [
    "FFmpegRunner",
    "MediaInfo",
    "get_media_info",
    "check_ffmpeg",
    "ProgressTracker",
    "RenderEvent",
    "RenderEventType",
    "RenderStrategy",
    "PreviewStrategy",
    "AuthoritativeStrategy",
    "PassthroughStrategy",
    "FallbackChain",
    "StrategyOutcome",
]
