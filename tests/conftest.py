"""
Shared fixtures for the vedit test suite.
"""

from pathlib import Path

import pytest

from vedit.core.config import EngineConfig
from vedit.core.target import EditTarget
from vedit.engine.engine import EditEngine


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    """Config writing generated files under the test's tmp dir."""
    return EngineConfig(temp_dir=tmp_path / "work")


@pytest.fixture(autouse=True)
def no_system_fonts(monkeypatch):
    """Keep drawtext output independent of the fonts installed on the host."""
    monkeypatch.setattr("vedit.filters.compiler.resolve_font", lambda *args, **kwargs: None)


class FakeRunner:
    """Stands in for FFmpegRunner; records commands and touches the output."""

    def __init__(self):
        self.commands: list[list[str]] = []

    def run(self, cmd, duration=None, tracker=None):
        self.commands.append(cmd)
        output = Path(cmd[-1])
        output.write_bytes(b"rendered")
        if tracker is not None:
            tracker.start(" ".join(cmd))
            tracker.complete()
        return output


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def engine(config, fake_runner) -> EditEngine:
    return EditEngine(config, runner=fake_runner)


@pytest.fixture
def source_file(tmp_path) -> Path:
    path = tmp_path / "source.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def local_target(source_file, tmp_path) -> EditTarget:
    """Local source with known duration, so no probing happens."""
    return EditTarget(
        source=str(source_file),
        output=tmp_path / "out.mp4",
        duration=10.0,
        has_audio=True,
    )


@pytest.fixture
def preview_target() -> EditTarget:
    return EditTarget(public_id="samples/dog")
