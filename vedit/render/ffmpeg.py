"""
FFmpeg execution boundary.

Provides helpers for working with the external media engine:
- Availability and version checks
- Media probing (ffprobe, with MoviePy as a fallback)
- Render command construction from compiled filters
- Running a render with progress reporting and a timeout
"""

from __future__ import annotations

import json
import logging
import re
import shlex
import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from moviepy import VideoFileClip

from vedit.core.config import EngineConfig
from vedit.core.errors import ExecutionError, NotFoundError
from vedit.core.operation import ResourceType
from vedit.filters.segments import SegmentPlan
from vedit.filters.stages import FilterExpression
from vedit.render.progress import ProgressTracker

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20

_DURATION_LINE = re.compile(r"Duration:\s*(\d+):(\d+):(\d+(?:\.\d+)?)")


def check_ffmpeg(binary: str = "ffmpeg") -> bool:
    """
    Check if FFmpeg is available in the system PATH.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return shutil.which(binary) is not None


def get_ffmpeg_version(binary: str = "ffmpeg") -> Optional[str]:
    """
    Get the FFmpeg version string.

    Returns:
        Version string or None if FFmpeg is not available
    """
    try:
        result = subprocess.run(
            [binary, "-version"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.split("\n")[0]
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None


@dataclass
class MediaInfo:
    """Media file information."""
    path: Path
    width: int
    height: int
    fps: float
    duration: float
    codec: str
    pix_fmt: str
    bitrate: Optional[int]
    audio_codec: Optional[str]
    audio_sample_rate: Optional[int]
    audio_channels: Optional[int]

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not None

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "duration": self.duration,
            "codec": self.codec,
            "pix_fmt": self.pix_fmt,
            "bitrate": self.bitrate,
            "audio_codec": self.audio_codec,
            "audio_sample_rate": self.audio_sample_rate,
            "audio_channels": self.audio_channels,
        }


def parse_probe_output(path: Path, data: dict[str, Any]) -> MediaInfo:
    """Build MediaInfo from ffprobe's JSON output."""
    video_stream = None
    audio_stream = None

    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video" and video_stream is None:
            video_stream = stream
        elif stream.get("codec_type") == "audio" and audio_stream is None:
            audio_stream = stream

    if not video_stream:
        raise ExecutionError(f"No video stream found in: {path}")

    # FPS can be "30000/1001"
    fps_str = video_stream.get("r_frame_rate", "30/1")
    if "/" in fps_str:
        num, den = fps_str.split("/")
        fps = float(num) / float(den) if float(den) > 0 else 30.0
    else:
        fps = float(fps_str)

    format_info = data.get("format", {})

    return MediaInfo(
        path=path,
        width=video_stream.get("width", 0),
        height=video_stream.get("height", 0),
        fps=fps,
        duration=float(format_info.get("duration", 0) or 0),
        codec=video_stream.get("codec_name", "unknown"),
        pix_fmt=video_stream.get("pix_fmt", "unknown"),
        bitrate=int(format_info["bit_rate"]) if format_info.get("bit_rate") else None,
        audio_codec=audio_stream.get("codec_name") if audio_stream else None,
        audio_sample_rate=int(audio_stream.get("sample_rate", 0)) if audio_stream else None,
        audio_channels=audio_stream.get("channels") if audio_stream else None,
    )


def get_media_info(path: Union[Path, str], ffprobe_binary: str = "ffprobe") -> MediaInfo:
    """
    Get media information using FFprobe, falling back to MoviePy.

    Raises:
        NotFoundError: If the file doesn't exist
    """
    path = Path(path)

    if not path.exists():
        raise NotFoundError(f"Media file not found: {path}")

    cmd = [
        ffprobe_binary,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        data = json.loads(result.stdout)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logger.warning(f"FFprobe failed, falling back to MoviePy: {e}")
        return _get_media_info_moviepy(path)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse FFprobe output: {e}")
        return _get_media_info_moviepy(path)

    return parse_probe_output(path, data)


def _get_media_info_moviepy(path: Path) -> MediaInfo:
    """Fallback method using MoviePy to get media info."""
    clip = VideoFileClip(str(path))
    try:
        return MediaInfo(
            path=path,
            width=clip.w,
            height=clip.h,
            fps=clip.fps or 30,
            duration=clip.duration or 0.0,
            codec="unknown",
            pix_fmt="unknown",
            bitrate=None,
            audio_codec="unknown" if clip.audio else None,
            audio_sample_rate=None,
            audio_channels=None,
        )
    finally:
        clip.close()


def build_render_command(
    config: EngineConfig,
    input_path: Union[Path, str],
    output_path: Union[Path, str],
    compiled: Union[FilterExpression, SegmentPlan],
    resource_type: ResourceType = ResourceType.VIDEO,
    has_audio: bool = True,
) -> list[str]:
    """
    Build the ffmpeg command line for one compiled operation.

    Args:
        config: Engine configuration (binary and encode settings)
        input_path: Source media path or URL
        output_path: Destination path
        compiled: A FilterExpression, or a SegmentPlan for removeClip
        resource_type: Images are looped for a single frame's duration
        has_audio: Whether the source carries an audio stream

    Returns:
        Argument list ready for subprocess
    """
    settings = config.render_settings
    is_image = resource_type == ResourceType.IMAGE
    include_audio = has_audio and not is_image

    cmd = [config.ffmpeg_binary, "-y", "-hide_banner"]
    if is_image:
        cmd.extend(["-loop", "1", "-t", str(settings.get("image_duration", 1))])
    cmd.extend(["-i", str(input_path)])

    if isinstance(compiled, SegmentPlan):
        cmd.extend(["-filter_complex", compiled.to_filter_graph(include_audio=include_audio)])
        cmd.extend(compiled.output_maps(include_audio=include_audio))
    else:
        video_filter = compiled.video_filter()
        audio_filter = compiled.audio_filter()
        if video_filter:
            cmd.extend(["-vf", video_filter])
        if audio_filter and include_audio:
            cmd.extend(["-af", audio_filter])
        elif audio_filter:
            logger.debug("Source has no audio, dropping audio filters")

    if is_image:
        cmd.extend(["-frames:v", "1"])
    else:
        cmd.extend([
            "-c:v", settings.get("video_codec", "libx264"),
            "-preset", str(settings.get("preset", "medium")),
            "-crf", str(settings.get("crf", 23)),
        ])
        if include_audio:
            cmd.extend(["-c:a", settings.get("audio_codec", "aac")])

    cmd.append(str(output_path))
    return cmd


def format_command(cmd: list[str]) -> str:
    return " ".join(shlex.quote(part) for part in cmd)


class FFmpegRunner:
    """
    Runs ffmpeg commands, reporting progress and enforcing a timeout.

    A failed or timed-out render raises a single ExecutionError carrying the
    tail of ffmpeg's output; no partial result is returned.
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        self.timeout = float(config.render_settings.get("timeout", 7200))

    def run(
        self,
        cmd: list[str],
        duration: Optional[float] = None,
        tracker: Optional[ProgressTracker] = None,
    ) -> Path:
        """
        Execute a render command.

        Args:
            cmd: Command built by build_render_command (output path last)
            duration: Expected output duration, used for percentages; parsed
                from ffmpeg's banner when omitted
            tracker: Receives start, progress and terminal events

        Returns:
            Path to the rendered output

        Raises:
            ExecutionError: If ffmpeg is missing, exits non-zero or times out
        """
        tracker = tracker or ProgressTracker()
        output_path = Path(cmd[-1])
        full_cmd = cmd[:-1] + ["-progress", "pipe:1", "-nostats", cmd[-1]]

        tracker.start(format_command(full_cmd))
        logger.debug(f"Running FFmpeg: {format_command(full_cmd)}")

        try:
            process = subprocess.Popen(
                full_cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError as e:
            error = ExecutionError(f"FFmpeg executable not found: {full_cmd[0]}", command=full_cmd)
            tracker.fail(error.message)
            raise error from e

        timed_out = False

        def _kill_on_timeout():
            nonlocal timed_out
            timed_out = True
            process.kill()

        timer = threading.Timer(self.timeout, _kill_on_timeout)
        timer.daemon = True
        timer.start()

        tail: list[str] = []
        try:
            for raw_line in process.stdout:
                line = raw_line.strip()
                if not line:
                    continue
                tail.append(line)
                del tail[:-STDERR_TAIL_LINES]

                if duration is None:
                    match = _DURATION_LINE.search(line)
                    if match:
                        h, m, s = match.groups()
                        duration = int(h) * 3600 + int(m) * 60 + float(s)

                percent = parse_progress_line(line, duration)
                if percent is not None:
                    tracker.update(percent, "Rendering")
            returncode = process.wait()
        except (OSError, ValueError) as e:
            error = ExecutionError(
                f"Failed reading FFmpeg output: {e}",
                stderr_tail="\n".join(tail),
                command=full_cmd,
            )
            tracker.fail(error.message)
            raise error from e
        finally:
            timer.cancel()
            if process.poll() is None:
                process.kill()
                process.wait()

        if timed_out:
            error = ExecutionError(
                f"FFmpeg timed out after {self.timeout:g}s",
                returncode=returncode,
                stderr_tail="\n".join(tail),
                command=full_cmd,
            )
            tracker.fail(error.message)
            raise error

        if returncode != 0:
            error = ExecutionError(
                f"FFmpeg exited with code {returncode}",
                returncode=returncode,
                stderr_tail="\n".join(tail),
                command=full_cmd,
            )
            tracker.fail(error.message)
            raise error

        tracker.complete(f"Rendered {output_path}")
        return output_path


def parse_progress_line(line: str, duration: Optional[float]) -> Optional[float]:
    """
    Turn one ``-progress`` line into a percentage.

    ``out_time_ms`` is reported in microseconds despite its name.
    """
    if line == "progress=end":
        return 100.0
    if not line.startswith("out_time_ms=") or not duration:
        return None
    try:
        seconds = int(line.split("=", 1)[1]) / 1_000_000
    except ValueError:
        return None
    return min(100.0, max(0.0, seconds / duration * 100))
