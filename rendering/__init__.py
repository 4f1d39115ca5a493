"""Rendering components: frame projection, labels and video sinks."""

from .text import TextRenderer
from .projector import Frame, FrameProjector, RenderConfig
from .sink import FFmpegSink, FrameEmitter, SinkUnavailable

__all__ = [
    "TextRenderer",
    "Frame",
    "FrameProjector",
    "RenderConfig",
    "FFmpegSink",
    "FrameEmitter",
    "SinkUnavailable",
]
