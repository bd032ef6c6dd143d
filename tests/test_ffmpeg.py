"""
Tests for the ffmpeg execution boundary.

subprocess.Popen is replaced with fakes, so no ffmpeg binary is needed.
"""

import threading
from pathlib import Path

import pytest

from vedit.core.config import EngineConfig
from vedit.core.errors import ExecutionError, NotFoundError
from vedit.core.operation import ResourceType
from vedit.filters.segments import SegmentEditor
from vedit.filters.stages import FilterExpression, FilterStage
from vedit.render.ffmpeg import (
    STDERR_TAIL_LINES,
    FFmpegRunner,
    build_render_command,
    get_media_info,
    parse_probe_output,
    parse_progress_line,
)
from vedit.render.progress import ProgressTracker, RenderEventType


@pytest.fixture
def expression() -> FilterExpression:
    return FilterExpression(
        video=(FilterStage.of("hue", s=0),),
        audio=(FilterStage.of("atempo", 2.0),),
    )


class FakeProcess:
    """Popen stand-in replaying a fixed output."""

    def __init__(self, lines, returncode=0):
        self.stdout = iter(lines)
        self.returncode = returncode
        self.killed = False

    def wait(self):
        return self.returncode

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True


class UndecodableProcess(FakeProcess):
    """Popen stand-in whose output stream fails part way through."""

    def __init__(self):
        super().__init__([], returncode=None)
        self.stdout = self._lines()

    def _lines(self):
        yield "frame=1\n"
        raise UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")

    def wait(self):
        return -9 if self.killed else None

    def poll(self):
        return -9 if self.killed else None


class HangingProcess:
    """Popen stand-in whose output only ends once it is killed."""

    def __init__(self):
        self._killed = threading.Event()
        self.stdout = self._lines()

    def _lines(self):
        yield "frame=1\n"
        self._killed.wait(5)

    def wait(self):
        return -9 if self._killed.is_set() else 0

    def poll(self):
        return -9 if self._killed.is_set() else None

    def kill(self):
        self._killed.set()


@pytest.fixture
def popen(monkeypatch):
    """Install a Popen factory; returns the list of commands it was called with."""
    calls = []

    def install(process):
        def fake_popen(cmd, **kwargs):
            calls.append(cmd)
            if isinstance(process, Exception):
                raise process
            return process

        monkeypatch.setattr("vedit.render.ffmpeg.subprocess.Popen", fake_popen)
        return calls

    return install


class TestBuildRenderCommand:

    def test_video_and_audio_filters(self, expression):
        cmd = build_render_command(EngineConfig(), "in.mp4", "out.mp4", expression)
        assert cmd == [
            "ffmpeg", "-y", "-hide_banner",
            "-i", "in.mp4",
            "-vf", "hue=s=0",
            "-af", "atempo=2",
            "-c:v", "libx264", "-preset", "medium", "-crf", "23",
            "-c:a", "aac",
            "out.mp4",
        ]

    def test_source_without_audio(self, expression):
        cmd = build_render_command(
            EngineConfig(), "in.mp4", "out.mp4", expression, has_audio=False
        )
        assert "-af" not in cmd
        assert "-c:a" not in cmd

    def test_image(self, expression):
        cmd = build_render_command(
            EngineConfig(), "in.png", "out.png", expression, resource_type=ResourceType.IMAGE
        )
        assert cmd == [
            "ffmpeg", "-y", "-hide_banner",
            "-loop", "1", "-t", "1",
            "-i", "in.png",
            "-vf", "hue=s=0",
            "-frames:v", "1",
            "out.png",
        ]

    def test_segment_plan(self):
        plan = SegmentEditor().plan(2, 4, 10)
        cmd = build_render_command(EngineConfig(), "in.mp4", Path("out.mp4"), plan)
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert graph == plan.to_filter_graph()
        assert cmd[cmd.index("-filter_complex") + 2:][:4] == ["-map", "[outv]", "-map", "[outa]"]
        assert "-vf" not in cmd

    def test_binary_and_encode_settings(self, expression):
        config = EngineConfig.from_dict({
            "render_settings": {"ffmpeg_binary": "/opt/ffmpeg", "crf": 18, "preset": "fast"},
        })
        cmd = build_render_command(config, "in.mp4", "out.mp4", expression)
        assert cmd[0] == "/opt/ffmpeg"
        assert cmd[cmd.index("-crf") + 1] == "18"
        assert cmd[cmd.index("-preset") + 1] == "fast"


class TestProgressLines:

    def test_out_time_is_microseconds(self):
        assert parse_progress_line("out_time_ms=2500000", 10) == 25.0

    def test_clamped(self):
        assert parse_progress_line("out_time_ms=20000000", 10) == 100.0

    def test_end(self):
        assert parse_progress_line("progress=end", None) == 100.0

    @pytest.mark.parametrize("line, duration", [
        ("out_time_ms=2500000", None),
        ("out_time_ms=N/A", 10),
        ("frame=12", 10),
        ("progress=continue", 10),
    ])
    def test_ignored(self, line, duration):
        assert parse_progress_line(line, duration) is None


class TestRunner:

    def test_success_reports_progress(self, popen):
        calls = popen(FakeProcess([
            "  Duration: 00:00:10.00, start: 0.000000, bitrate: 800 kb/s\n",
            "out_time_ms=5000000\n",
            "progress=continue\n",
            "\n",
            "progress=end\n",
        ]))
        tracker = ProgressTracker("rotate")
        events = []
        tracker.subscribe(events.append)

        output = FFmpegRunner(EngineConfig()).run(
            ["ffmpeg", "-i", "in.mp4", "out.mp4"], tracker=tracker
        )

        assert output == Path("out.mp4")
        assert calls[0] == [
            "ffmpeg", "-i", "in.mp4", "-progress", "pipe:1", "-nostats", "out.mp4",
        ]
        assert [e.type for e in events] == [
            RenderEventType.START,
            RenderEventType.PROGRESS,
            RenderEventType.PROGRESS,
            RenderEventType.COMPLETE,
        ]
        assert [e.percent for e in events[1:3]] == [50.0, 100.0]
        assert "-progress pipe:1" in events[0].command

    def test_explicit_duration(self, popen):
        popen(FakeProcess(["out_time_ms=1000000\n"]))
        tracker = ProgressTracker()
        FFmpegRunner(EngineConfig()).run(["ffmpeg", "out.mp4"], duration=4, tracker=tracker)
        progress = [e.percent for e in tracker.events if e.type == RenderEventType.PROGRESS]
        assert progress == [25.0]

    def test_non_zero_exit(self, popen):
        lines = [f"line {i}\n" for i in range(30)] + ["Error opening input\n"]
        popen(FakeProcess(lines, returncode=1))
        tracker = ProgressTracker()

        with pytest.raises(ExecutionError) as exc:
            FFmpegRunner(EngineConfig()).run(["ffmpeg", "out.mp4"], tracker=tracker)

        error = exc.value
        assert error.returncode == 1
        tail = error.stderr_tail.splitlines()
        assert len(tail) == STDERR_TAIL_LINES
        assert tail[-1] == "Error opening input"
        assert error.details["returncode"] == 1
        assert tracker.events[-1].type == RenderEventType.ERROR

    def test_missing_binary(self, popen):
        popen(FileNotFoundError("ffmpeg"))
        config = EngineConfig.from_dict({"render_settings": {"ffmpeg_binary": "/nope/ffmpeg"}})
        with pytest.raises(ExecutionError, match="/nope/ffmpeg"):
            FFmpegRunner(config).run(["/nope/ffmpeg", "-i", "a.mp4", "b.mp4"])

    def test_timeout_kills_process(self, popen):
        process = HangingProcess()
        popen(process)
        config = EngineConfig.from_dict({"render_settings": {"timeout": 0.05}})
        tracker = ProgressTracker()

        with pytest.raises(ExecutionError, match="timed out") as exc:
            FFmpegRunner(config).run(["ffmpeg", "out.mp4"], tracker=tracker)

        assert process._killed.is_set()
        assert exc.value.stderr_tail == "frame=1"
        assert tracker.events[-1].type == RenderEventType.ERROR

    def test_output_is_decoded_leniently(self, monkeypatch):
        seen = {}

        def fake_popen(cmd, **kwargs):
            seen.update(kwargs)
            return FakeProcess([])

        monkeypatch.setattr("vedit.render.ffmpeg.subprocess.Popen", fake_popen)
        FFmpegRunner(EngineConfig()).run(["ffmpeg", "out.mp4"])
        assert seen["encoding"] == "utf-8"
        assert seen["errors"] == "replace"

    def test_unreadable_output_fails_once(self, popen):
        process = UndecodableProcess()
        popen(process)
        tracker = ProgressTracker()
        events = []
        tracker.subscribe(events.append)

        with pytest.raises(ExecutionError, match="Failed reading FFmpeg output") as exc:
            FFmpegRunner(EngineConfig()).run(["ffmpeg", "out.mp4"], tracker=tracker)

        assert isinstance(exc.value.__cause__, UnicodeDecodeError)
        assert exc.value.stderr_tail == "frame=1"
        assert process.killed
        terminal = [
            e for e in events
            if e.type in (RenderEventType.ERROR, RenderEventType.COMPLETE)
        ]
        assert [e.type for e in terminal] == [RenderEventType.ERROR]


class TestProbe:

    def test_parse_probe_output(self):
        info = parse_probe_output(Path("clip.mp4"), {
            "streams": [
                {"codec_type": "video", "codec_name": "h264", "width": 1280,
                 "height": 720, "r_frame_rate": "30000/1001", "pix_fmt": "yuv420p"},
                {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000",
                 "channels": 2},
            ],
            "format": {"duration": "12.5", "bit_rate": "800000"},
        })
        assert info.resolution == "1280x720"
        assert info.fps == pytest.approx(29.97, rel=1e-3)
        assert info.duration == 12.5
        assert info.bitrate == 800000
        assert info.has_audio
        assert info.audio_sample_rate == 48000

    def test_silent_source(self):
        info = parse_probe_output(Path("clip.mp4"), {
            "streams": [{"codec_type": "video", "width": 10, "height": 10}],
            "format": {},
        })
        assert not info.has_audio
        assert info.duration == 0.0
        assert info.fps == 30.0

    def test_no_video_stream(self):
        with pytest.raises(ExecutionError):
            parse_probe_output(Path("a.mp3"), {"streams": [{"codec_type": "audio"}]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            get_media_info(tmp_path / "missing.mp4")
