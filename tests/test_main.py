"""Tests for the subcommand dispatcher and the CLIs behind it."""

import json

import pytest
import yaml
from PIL import Image

from rankreel.main import main
from rankreel.plan import plan_for_job, plan_timed, TimestampMark
from rankreel.preview_cli import visible_steps
from rankreel.status import StatusReporter, RENDERING
from rankreel.storage import LocalObjectStorage


def _write_job(tmp_path, **overrides):
    job = {
        "job_id": "post-1",
        "title": "Top picks",
        "ranks": ["One", "Two", "Three"],
        "clips": ["sess/v_0.mp4", "sess/v_1.mp4"],
    }
    job.update(overrides)
    path = tmp_path / "job.yaml"
    path.write_text(yaml.dump(job))
    return str(path)


def _write_small_layout(tmp_path):
    path = tmp_path / "layout.yaml"
    path.write_text(yaml.dump({
        "canvas_width": 180, "canvas_height": 320,
        "title_font_size": 18, "title_box_width": 160,
        "rank_font_size": 12, "rank_spacing": 24, "rank_box_width": 140,
        "watermark_font_size": 10,
    }))
    return str(path)


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0

    @pytest.mark.parametrize("command", ["render", "status", "preview"])
    def test_subcommand_exists(self, command):
        # Missing required args, but the subcommand is recognized.
        with pytest.raises(SystemExit):
            main([command])

    def test_invalid_subcommand_errors(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0


class TestRenderCli:
    def test_validate_prints_plan(self, tmp_path, capsys):
        main(["render", "--job", _write_job(tmp_path), "--validate"])
        out = capsys.readouterr().out
        assert "Job valid: post-1 (auto_stitch), 2 overlay steps" in out
        assert "ranks=[3]" in out
        assert "ranks=[2, 3]" in out

    def test_invalid_job_exits(self, tmp_path, capsys):
        path = _write_job(tmp_path, ranks=["only one"])
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--job", path, "--validate"])
        assert exc_info.value.code == 1
        assert "Invalid job" in capsys.readouterr().err

    def test_missing_job_file_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--job", str(tmp_path / "missing.yaml"), "--validate"])
        assert exc_info.value.code == 1
        assert "Invalid job" in capsys.readouterr().err

    def test_missing_layout_file_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "render", "--job", _write_job(tmp_path),
                "--layout", str(tmp_path / "missing.yaml"), "--validate",
            ])
        assert exc_info.value.code == 1
        assert "Invalid job" in capsys.readouterr().err

    def test_malformed_yaml_exits(self, tmp_path, capsys):
        path = tmp_path / "job.yaml"
        path.write_text("job_id: [unclosed\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--job", str(path), "--validate"])
        assert exc_info.value.code == 1
        assert "Invalid job" in capsys.readouterr().err

    def test_failed_job_exits(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("RANKREEL_CALLBACK_URL", "")
        monkeypatch.setenv("RANKREEL_WORK_DIR", str(tmp_path / "work"))
        storage_root = tmp_path / "buckets"
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--job", _write_job(tmp_path), "--storage-root", str(storage_root)])
        assert exc_info.value.code == 1
        assert "failed" in capsys.readouterr().err
        record = json.loads((storage_root / "output" / "post-1.json").read_text())
        assert record["status"] == "FAILED"


class TestStatusCli:
    def test_pending_when_unknown(self, tmp_path, capsys):
        main(["status", "post-9", "--storage-root", str(tmp_path)])
        assert json.loads(capsys.readouterr().out) == {"status": "PENDING", "terminal": False}

    def test_prints_record(self, tmp_path, capsys):
        StatusReporter(LocalObjectStorage(tmp_path), "output", "post-1").update(RENDERING, 10)
        main(["status", "post-1", "--storage-root", str(tmp_path)])
        record = json.loads(capsys.readouterr().out)
        assert record["status"] == RENDERING
        assert record["progress"] == 10


class TestVisibleSteps:
    def test_defaults_to_last_step(self):
        plan = plan_for_job({"mode": "auto_stitch", "ranks": ["a", "b"], "clips": ["x", "y"]})
        assert visible_steps(plan, None, None) == [plan.steps[-1]]

    def test_step_out_of_range(self):
        plan = plan_for_job({"mode": "auto_stitch", "ranks": ["a"], "clips": ["x"]})
        with pytest.raises(ValueError, match="out of range"):
            visible_steps(plan, None, 3)

    def test_timed_layers_visible_at_time(self):
        plan = plan_timed(3, [TimestampMark(t) for t in (2.0, 5.0, 8.0)], 10.0)
        kinds = [(s.kind, s.rank_indices) for s in visible_steps(plan, 6.0, None)]
        assert kinds == [("base", ()), ("rank", (2,)), ("rank", (1,))]

    def test_base_gone_during_lead(self):
        plan = plan_timed(1, [TimestampMark(1.0)], 10.0)
        assert [s.kind for s in visible_steps(plan, 9.9, None)] == ["rank"]


class TestPreviewCli:
    def test_writes_overlay_png(self, tmp_path, capsys):
        out = tmp_path / "preview.png"
        main([
            "preview", "--job", _write_job(tmp_path), "--output", str(out),
            "--layout", _write_small_layout(tmp_path), "--step", "0",
        ])
        with Image.open(out) as img:
            assert img.size == (180, 320)
            assert img.mode == "RGBA"
            assert img.getpixel((0, 0)) == (0, 0, 0, 255)
        assert "1 layer(s)" in capsys.readouterr().out

    def test_composites_over_frame(self, tmp_path, source_video):
        out = tmp_path / "frame.png"
        main([
            "preview", "--job", _write_job(tmp_path), "--output", str(out),
            "--layout", _write_small_layout(tmp_path), "--frame", str(source_video),
            "--at", "0.5",
        ])
        with Image.open(out) as img:
            assert img.size == (180, 320)
            assert img.mode == "RGB"
            # Below the band and away from text, the blue clip shows through.
            r, g, b = img.getpixel((5, 200))
            assert b > 150 and r < 80
