import os

import pytest
from PIL import Image

from reticulations import cli, export
from reticulations.settings import DEFAULT_SETTINGS, Preset, Shape, save_preset


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: calls.append((a, kw)))
    return calls


@pytest.fixture
def photo(tmp_path, gradient_image):
    path = tmp_path / "photo.png"
    gradient_image.save(path)
    return str(path)


def test_render_image(photo, tmp_path, quiet_logging):
    output = str(tmp_path / "out.png")
    snippet = str(tmp_path / "look.py")
    code = cli.main([photo, output, "--shape", "star", "--cell-size", "5",
                     "--bg", "transparent", "--snippet", snippet])
    assert code == 0
    image = Image.open(output)
    assert image.size == (40, 30)
    assert image.mode == "RGBA"
    with open(snippet, encoding="utf-8") as f:
        assert "'shape': 'star'" in f.read()
    assert quiet_logging[0][1] == {"log_file": False}


def test_missing_input_fails(tmp_path):
    assert cli.main([str(tmp_path / "missing.png"), str(tmp_path / "out.png")]) == 1


def test_bad_colour_fails(photo, tmp_path):
    assert cli.main([photo, str(tmp_path / "out.png"), "--fg", "notacolour"]) == 1


def test_unknown_shape_is_a_usage_error(photo, tmp_path):
    with pytest.raises(SystemExit):
        cli.main([photo, str(tmp_path / "out.png"), "--shape", "pentagon"])


def test_defaults_without_flags():
    args = cli.build_parser().parse_args(["in.png", "out.png"])
    settings, fps = cli.settings_from_args(args)
    assert settings == DEFAULT_SETTINGS
    assert fps is None


def test_flags_override_preset(tmp_path):
    preset_path = str(tmp_path / "look.json")
    base = DEFAULT_SETTINGS.replace(shape=Shape.HEX, cell_size=20, edge_detection=True)
    save_preset(Preset(settings=base, preview_fps=12), preset_path)

    args = cli.build_parser().parse_args(
        ["in.mp4", "out.mp4", "--preset", preset_path, "--cell-size", "8",
         "--no-edge-detection", "--invert", "--fg", "red"])
    settings, fps = cli.settings_from_args(args)
    assert settings.shape == Shape.HEX
    assert settings.cell_size == 8
    assert settings.edge_detection is False
    assert settings.invert is True
    assert settings.threshold is False
    assert settings.foreground.rgba == (255, 0, 0, 255)
    assert fps == 12

    args = cli.build_parser().parse_args(
        ["in.mp4", "out.mp4", "--preset", preset_path, "--fps", "24"])
    assert cli.settings_from_args(args)[1] == 24


def test_render_video_without_ffmpeg(make_video, tmp_path, monkeypatch):
    monkeypatch.setattr(export, "find_ffmpeg", lambda: None)
    source = make_video(frames=6, fps=10.0)
    output = str(tmp_path / "render" / "out.mp4")
    assert cli.main([source, output, "--fps", "10", "--cell-size", "4"]) == 0
    assert os.path.exists(str(tmp_path / "render" / "out.avi"))
    assert not os.path.exists(output)
