"""
Frame sinks.

FFmpegSink pipes raw RGB frames into an FFmpeg subprocess. FrameEmitter
opens a sink lazily on the first frame and keeps the simulation running
without video when the sink cannot be opened or stops accepting frames.
"""

import subprocess
from pathlib import Path
from typing import Optional

import numpy as np

from .projector import Frame, RenderConfig


class SinkUnavailable(RuntimeError):
    """The frame sink could not be opened."""


def check_ffmpeg(executable: str = "ffmpeg") -> bool:
    """Check if FFmpeg is available."""
    try:
        result = subprocess.run(
            [executable, "-version"],
            capture_output=True,
            text=True
        )
        return result.returncode == 0
    except (FileNotFoundError, PermissionError):
        return False


class FFmpegSink:
    """Video sink encoding frames with FFmpeg (rawvideo rgb24 on stdin)."""

    CODECS = ("mjpeg", "h264", "h265", "vp9")

    def __init__(self, executable: str = "ffmpeg", crf: int = 23, preset: str = "medium"):
        self.executable = executable
        self.crf = crf
        self.preset = preset
        self.process: Optional[subprocess.Popen] = None
        self.path: Optional[Path] = None
        self.frames_written = 0
        self._frame_shape = None

    def _get_ffmpeg_command(self, path: Path, codec: str, fps: int,
                            width: int, height: int) -> list:
        """Build FFmpeg command for encoding."""
        cmd = [
            self.executable,
            "-y",  # Overwrite output
            "-loglevel", "error",
            "-f", "rawvideo",
            "-vcodec", "rawvideo",
            "-pix_fmt", "rgb24",
            "-s", f"{width}x{height}",
            "-r", str(fps),
            "-i", "-",  # Read from pipe
        ]

        if codec == "mjpeg":
            cmd.extend([
                "-c:v", "mjpeg",
                "-q:v", "3",
                "-pix_fmt", "yuvj420p",
            ])
        elif codec == "h264":
            cmd.extend([
                "-c:v", "libx264",
                "-preset", self.preset,
                "-crf", str(self.crf),
                "-pix_fmt", "yuv420p",
                "-movflags", "+faststart",
            ])
        elif codec == "h265":
            cmd.extend([
                "-c:v", "libx265",
                "-preset", self.preset,
                "-crf", str(self.crf),
                "-pix_fmt", "yuv420p",
                "-tag:v", "hvc1",
                "-movflags", "+faststart",
            ])
        elif codec == "vp9":
            cmd.extend([
                "-c:v", "libvpx-vp9",
                "-crf", str(self.crf),
                "-b:v", "0",
                "-pix_fmt", "yuv420p",
            ])

        cmd.append(str(path))
        return cmd

    def open(self, path, codec: str, fps: int, width: int, height: int):
        if codec not in self.CODECS:
            raise SinkUnavailable(f"Unsupported codec '{codec}' (choose from {', '.join(self.CODECS)})")
        if not check_ffmpeg(self.executable):
            raise SinkUnavailable(f"FFmpeg executable not found: {self.executable}")

        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkUnavailable(f"Cannot create output directory {path.parent}: {e}") from e

        # stderr is not piped so a full buffer can never block the encoder
        try:
            self.process = subprocess.Popen(
                self._get_ffmpeg_command(path, codec, fps, width, height),
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SinkUnavailable(f"Could not start FFmpeg: {e}") from e

        if self.process.poll() is not None:
            raise SinkUnavailable(f"FFmpeg exited immediately (code {self.process.returncode})")

        self.path = path
        self._frame_shape = (height, width, 3)
        self.frames_written = 0

    def write_frame(self, pixels: np.ndarray):
        if self.process is None:
            raise RuntimeError("Sink is not open")
        if pixels.shape != self._frame_shape:
            raise ValueError(f"Frame shape {pixels.shape} does not match {self._frame_shape}")
        self.process.stdin.write(np.ascontiguousarray(pixels, dtype=np.uint8).tobytes())
        self.frames_written += 1

    def close(self) -> int:
        """Finish encoding. Returns FFmpeg's exit code."""
        if self.process is None:
            return 0
        try:
            self.process.stdin.close()
        except BrokenPipeError:
            pass
        code = self.process.wait()
        self.process = None
        return code


class FrameEmitter:
    """
    Hands frames to a sink, opening it on the first frame.

    A sink that fails to open (or breaks mid-run) is reported once and every
    later emit becomes a no-op; the simulation itself carries on.
    """

    def __init__(self, sink, render_config: RenderConfig, path):
        self.sink = sink
        self.config = render_config
        self.path = Path(path)
        self.opened = False
        self.disabled = False
        self.emitted = 0

    def _open(self) -> bool:
        cfg = self.config
        try:
            self.sink.open(self.path, cfg.codec, cfg.fps, cfg.width, cfg.height)
        except SinkUnavailable as e:
            print(f"[Sink] Error: {e}")
            print("[Sink] Video output disabled, simulation continues")
            self.disabled = True
            return False
        self.opened = True
        print(f"[Sink] Video writer initialized. Output: {self.path}")
        return True

    def emit(self, frame: Frame) -> bool:
        """Write a frame. Returns False when output is disabled."""
        if self.disabled:
            return False
        if not self.opened and not self._open():
            return False

        try:
            self.sink.write_frame(frame.pixels)
        except (BrokenPipeError, OSError) as e:
            print(f"[Sink] Error writing frame {frame.index}: {e}")
            print("[Sink] Video output disabled, simulation continues")
            self.disabled = True
            return False

        self.emitted += 1
        return True

    def close(self):
        if not self.opened:
            return
        code = self.sink.close()
        self.opened = False
        if code == 0:
            print(f"[Sink] Video saved to {self.path} ({self.emitted} frames)")
        else:
            print(f"[Sink] Error: encoder exited with code {code}, {self.path} may be incomplete")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
