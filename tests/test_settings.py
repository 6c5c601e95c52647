import dataclasses
import json

import pytest

from reticulations.color import RGB, TRANSPARENT
from reticulations.settings import (DEFAULT_SETTINGS, LIMITS, Preset, ProcessorSettings,
                                    Shape, load_preset, save_preset)


def test_strings_are_normalised():
    s = ProcessorSettings(foreground="#ff0000", background="transparent", shape="star")
    assert s.foreground == RGB(255, 0, 0)
    assert s.background is TRANSPARENT
    assert s.shape is Shape.STAR


def test_unknown_shape_rejected():
    with pytest.raises(ValueError):
        ProcessorSettings(shape="pentagon")


def test_settings_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_SETTINGS.cell_size = 3


def test_field_defaults():
    s = ProcessorSettings()
    assert s.edge_detection is False
    assert s.edge_sensitivity == 1.0


def test_app_defaults():
    assert DEFAULT_SETTINGS.cell_size == 10
    assert DEFAULT_SETTINGS.contrast == 1.5
    assert DEFAULT_SETTINGS.foreground == RGB(255, 255, 255)
    assert DEFAULT_SETTINGS.background == RGB(0x1a, 0x1a, 0x1a)
    assert DEFAULT_SETTINGS.overlap == 0.2
    assert DEFAULT_SETTINGS.edge_detection is True


def test_swap_colors():
    s = ProcessorSettings(foreground="#ffffff", background="transparent")
    swapped = s.swap_colors()
    assert swapped.foreground is TRANSPARENT
    assert swapped.background == RGB(255, 255, 255)
    assert swapped.swap_colors() == s


def test_dict_round_trip():
    s = DEFAULT_SETTINGS.replace(shape=Shape.HEART, background=TRANSPARENT, invert=True)
    data = s.to_dict()
    assert data["shape"] == "heart"
    assert data["background"] == "transparent"
    assert ProcessorSettings.from_dict(data) == s


def test_from_dict_defaults_and_unknown_keys():
    s = ProcessorSettings.from_dict({"cell_size": "7", "bogus": 1})
    assert s.cell_size == 7
    assert s.contrast == DEFAULT_SETTINGS.contrast


def test_preset_json():
    preset = Preset(DEFAULT_SETTINGS.replace(cell_size=22), preview_fps=24)
    loaded = Preset.from_json(preset.to_json())
    assert loaded.settings.cell_size == 22
    assert loaded.preview_fps == 24
    assert json.loads(preset.to_json())["version"] == 1


def test_preset_missing_keys():
    loaded = Preset.from_json("{}")
    assert loaded.settings == DEFAULT_SETTINGS
    assert loaded.preview_fps == 15


def test_save_and_load_preset(tmp_path):
    path = str(tmp_path / "presets" / "look.json")
    save_preset(Preset(DEFAULT_SETTINGS.replace(shape="hex")), path)
    assert load_preset(path).settings.shape is Shape.HEX


def test_load_missing_preset(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_preset(str(tmp_path / "nope.json"))


def test_limits_clamp():
    assert LIMITS["cell_size"].clamp(100) == 40
    assert LIMITS["overlap"].clamp(-3) == -0.5
    assert LIMITS["preview_fps"].clamp(12) == 12
