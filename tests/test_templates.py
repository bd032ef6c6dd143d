"""
Tests for the template catalog and the template sequencer.
"""

from pathlib import Path

import pytest

from vedit.catalog.templates import Template, TemplateCatalog, TemplateOperation
from vedit.core.errors import TemplateNotFoundError, ValidationError
from vedit.core.result import OperationStatus
from vedit.core.target import EditTarget
from vedit.engine.sequencer import TemplateSequencer
from vedit.render.ffmpeg import MediaInfo


@pytest.fixture(scope="module")
def catalog() -> TemplateCatalog:
    return TemplateCatalog.load()


def _media_info(path, duration=10.0) -> MediaInfo:
    return MediaInfo(
        path=Path(path),
        width=1920,
        height=1080,
        fps=30.0,
        duration=duration,
        codec="h264",
        pix_fmt="yuv420p",
        bitrate=None,
        audio_codec="aac",
        audio_sample_rate=48000,
        audio_channels=2,
    )


class TestCatalog:

    def test_bundled_templates(self, catalog):
        assert len(catalog) == 10
        assert catalog.version == 1
        assert "cinematic-intro" in catalog

    def test_get(self, catalog):
        template = catalog.get("retro-vintage")
        assert template.category == "creative"
        assert [op.operation for op in template.operations] == [
            "colorGrade", "applyEffect", "applyEffect",
        ]

    def test_lookup_is_case_sensitive(self, catalog):
        with pytest.raises(TemplateNotFoundError) as exc:
            catalog.get("Cinematic-Intro")
        assert exc.value.details == {"template_id": "Cinematic-Intro"}

    def test_categories(self, catalog):
        assert catalog.categories() == [
            "cinematic", "vlog", "product", "social", "corporate", "creative",
        ]
        assert {t.id for t in catalog.by_category("cinematic")} == {
            "cinematic-intro", "cinematic-trailer", "dramatic-noir",
        }

    def test_every_step_validates(self, catalog, engine):
        for template in catalog:
            for step in template.operations:
                result = engine.validate(step.to_instruction())
                assert result.valid, f"{template.id}: {result.errors}"

    def test_round_trip_dict(self, catalog):
        template = catalog.get("cinematic-intro")
        assert Template.from_dict(template.to_dict()) == template

    def test_duplicate_ids_rejected(self):
        template = Template("a", "A", "", "vlog")
        with pytest.raises(ValidationError):
            TemplateCatalog([template, template])

    def test_malformed_entry(self):
        with pytest.raises(ValidationError):
            Template.from_dict({"name": "no id"})

    def test_load_custom_file(self, tmp_path):
        path = tmp_path / "templates.yaml"
        path.write_text(
            "version: 2\n"
            "templates:\n"
            "  - id: spin\n"
            "    category: creative\n"
            "    operations:\n"
            "      - operation: rotate\n"
            "        params: {degrees: 90}\n"
        )
        custom = TemplateCatalog.load(path)
        assert custom.version == 2
        assert custom.get("spin").operations == (TemplateOperation("rotate", {"degrees": 90}),)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TemplateCatalog.load(tmp_path / "nope.yaml")


class TestSequencer:

    def test_preview_template(self, engine, catalog, preview_target):
        results = TemplateSequencer(engine, catalog).apply(
            "retro-vintage", preview_target, backend="preview"
        )
        assert [r.status for r in results] == [OperationStatus.COMPLETED] * 3
        assert [r.index for r in results] == [0, 1, 2]
        assert all(r.output.startswith("https://res.cloudinary.com/demo/video/upload/")
                   for r in results)

    def test_failure_does_not_stop_the_run(self, engine, preview_target):
        custom = TemplateCatalog([
            Template("mixed", "Mixed", "", "creative", (
                TemplateOperation("rotate", {"degrees": 90}),
                TemplateOperation("rotate", {"degrees": 500}),
                TemplateOperation("adjustSpeed", {"speed": 2}),
            )),
        ])
        results = TemplateSequencer(engine, custom).apply("mixed", preview_target, "preview")

        assert [r.status for r in results] == [
            OperationStatus.COMPLETED, OperationStatus.FAILED, OperationStatus.COMPLETED,
        ]
        assert [r.index for r in results] == [0, 1, 2]
        assert isinstance(results[1].error, ValidationError)

    def test_unknown_template(self, engine, catalog, preview_target):
        with pytest.raises(TemplateNotFoundError):
            TemplateSequencer(engine, catalog).apply("nope", preview_target)

    def test_renders_are_chained(self, engine, fake_runner, local_target, monkeypatch):
        monkeypatch.setattr(
            "vedit.render.strategies.get_media_info",
            lambda path, binary="ffprobe": _media_info(path),
        )
        results = TemplateSequencer(engine).run(
            [
                {"operation": "colorGrade", "params": {"preset": "cinematic"}},
                {"operation": "rotate", "params": {"degrees": 90}},
            ],
            local_target,
            backend="authoritative",
        )

        assert all(r.success for r in results)
        first_output, second_output = (r.output for r in results)
        assert first_output.name == "out.step00.mp4"
        assert second_output.name == "out.step01.mp4"

        second_cmd = fake_runner.commands[1]
        assert second_cmd[second_cmd.index("-i") + 1] == str(first_output)
        assert local_target.output.read_bytes() == b"rendered"
        assert not first_output.exists()
        assert not second_output.exists()
        assert sorted(p.name for p in local_target.output.parent.glob("out*")) == ["out.mp4"]

    def test_compile_only_sequence(self, engine, source_file):
        target = EditTarget(source=str(source_file), duration=10.0, has_audio=True)
        results = TemplateSequencer(engine).apply("cyberpunk-neon", target, "authoritative")
        assert len(results) == 1
        assert str(results[0].output) == "eq=brightness=0.2:saturation=1.5"
