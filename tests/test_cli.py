"""Tests for CLI module."""

import base64
import json
import wave

import pytest

from storymix.cli import main


def _create_manifest(tmp_path, make_wav, extra_overlays=()):
    """Three scenes: speech in 0 and 2, an effect on the silent scene 1."""
    def b64(data):
        return base64.b64encode(data).decode()

    manifest = {
        "scene_count": 3,
        "units": [
            {"sequence_index": 0, "category": "narration", "group_id": 0,
             "text": "It was dark.", "audio_base64": b64(make_wav(duration=1.0))},
            {"sequence_index": 1, "category": "dialogue", "group_id": 2, "speaker": "alice",
             "text": "Hello?", "audio_base64": b64(make_wav(duration=0.5))},
        ],
        "overlays": [
            {"target_scene_index": 1, "kind": "effect", "label": "creak",
             "audio_base64": b64(make_wav(duration=0.25, amplitude=0.1))},
            *extra_overlays,
        ],
    }
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(manifest))
    return str(path)


def test_render_writes_outputs(tmp_path, make_wav, capsys):
    """render writes a WAV plus timeline and subtitles."""
    manifest = _create_manifest(tmp_path, make_wav)
    out = tmp_path / "out" / "mix.wav"
    timeline = tmp_path / "out" / "timeline.json"
    srt = tmp_path / "out" / "mix.srt"

    main(["render", manifest, "-o", str(out), "--preset", "book",
          "--timeline", str(timeline), "--srt", str(srt)])

    with wave.open(str(out)) as reader:
        assert reader.getframerate() == 8000
        assert reader.getnframes() > 0

    data = json.loads(timeline.read_text())
    assert [s["start_time"] for s in data["scenes"]] == pytest.approx([0.0, 0.61, 1.22])
    assert "It was dark." in srt.read_text()
    assert "00:00:01,220 --> 00:00:01,720" in srt.read_text()
    assert "Done:" in capsys.readouterr().out


def test_render_reports_failed_clips(tmp_path, make_wav, capsys):
    bad = {"target_scene_index": 0, "kind": "effect", "audio_base64": base64.b64encode(b"junk").decode()}
    manifest = _create_manifest(tmp_path, make_wav, extra_overlays=[bad])
    main(["render", manifest, "-o", str(tmp_path / "mix.wav")])
    assert "skipped 1 overlay" in capsys.readouterr().err


def test_render_with_config_override(tmp_path, make_wav):
    manifest = _create_manifest(tmp_path, make_wav)
    config = tmp_path / "direction.json"
    config.write_text(json.dumps({"gaps": {"narration->dialogue": 1.0}}))
    timeline = tmp_path / "timeline.json"
    main(["render", manifest, "-o", str(tmp_path / "mix.wav"), "--preset", "book",
          "--config", str(config), "--timeline", str(timeline)])
    data = json.loads(timeline.read_text())
    assert data["units"][1]["start_time"] == pytest.approx(2.0)


def test_render_missing_manifest(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["render", str(tmp_path / "nope.json"), "-o", str(tmp_path / "mix.wav")])
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_render_missing_config(tmp_path, make_wav, capsys):
    manifest = _create_manifest(tmp_path, make_wav)
    with pytest.raises(SystemExit):
        main(["render", manifest, "-o", str(tmp_path / "mix.wav"), "--config", str(tmp_path / "x.json")])
    assert "Config file not found" in capsys.readouterr().err


def test_render_allocation_failure(tmp_path, make_wav, capsys):
    far = {"target_scene_index": 99, "kind": "effect", "fallback_start_time": 1e9,
           "audio_base64": base64.b64encode(make_wav(duration=0.1)).decode()}
    manifest = _create_manifest(tmp_path, make_wav, extra_overlays=[far])
    with pytest.raises(SystemExit):
        main(["render", manifest, "-o", str(tmp_path / "mix.wav")])
    assert "Render failed" in capsys.readouterr().err
    assert not (tmp_path / "mix.wav").exists()


def test_timeline_command(tmp_path, make_wav, capsys):
    manifest = _create_manifest(tmp_path, make_wav)
    main(["timeline", manifest, "--preset", "book"])
    out = capsys.readouterr().out
    assert "(interpolated)" in out
    assert "alice" in out
    assert "Speech ends at 00:00:01,720" in out


def test_presets_command(capsys):
    main(["presets"])
    out = capsys.readouterr().out
    assert "screenplay (default)" in out
    assert "narration->dialogue" in out


def test_no_command_prints_help(capsys):
    main([])
    assert "usage" in capsys.readouterr().out.lower()


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert "storymix" in capsys.readouterr().out


def test_timeline_at_reports_scene(tmp_path, make_wav, capsys):
    manifest = _create_manifest(tmp_path, make_wav)
    main(["timeline", manifest, "--preset", "book", "--at", "0.7"])
    assert "At 00:00:00,700: scene 1" in capsys.readouterr().out


@pytest.mark.parametrize("overrides", [
    {"gaps": {"narration->dialogue": "long"}},
    {"max_render_seconds": "10"},
    {"target_peak": -0.6, "music_gain": -5},
])
def test_timeline_rejects_bad_config(tmp_path, make_wav, capsys, overrides):
    manifest = _create_manifest(tmp_path, make_wav)
    config = tmp_path / "direction.json"
    config.write_text(json.dumps(overrides))
    with pytest.raises(SystemExit) as exc:
        main(["timeline", manifest, "--config", str(config)])
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_timeline_rejects_bad_scene_count(tmp_path, capsys):
    manifest = tmp_path / "manifest.json"
    manifest.write_text(json.dumps({"units": [], "scene_count": "three"}))
    with pytest.raises(SystemExit) as exc:
        main(["timeline", str(manifest)])
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err
