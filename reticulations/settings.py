import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict

from .color import Color, RGB, parse_color, to_hex

logger = logging.getLogger(__name__)

# Longest side a loaded still image is scaled down to
MAX_DIMENSION = 1200

# Display refresh the live preview ticks at; frames are admitted from this
DISPLAY_FPS = 30
DEFAULT_PREVIEW_FPS = 15

# Transient status messages disappear after this long
STATUS_TIMEOUT_MS = 4000

PRESET_VERSION = 1


class Shape(str, Enum):
    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    STAR = "star"
    HEART = "heart"
    HEX = "hex"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class Range:
    min: float
    max: float
    step: float = 1

    def clamp(self, value):
        return max(self.min, min(self.max, value))


# Interactive slider ranges. The rasterizer accepts values outside them.
LIMITS = {
    "cell_size": Range(4, 40, 1),
    "contrast": Range(0.5, 3.0, 0.1),
    "overlap": Range(-0.5, 1.0, 0.1),
    "edge_sensitivity": Range(0.5, 2.0, 0.1),
    "preview_fps": Range(5, 30, 1),
}


@dataclass(frozen=True)
class ProcessorSettings:
    """
    Parameters for one rasterizer call.

    Colours and the shape may be given as strings; they are normalised
    to Color / Shape values on construction.
    """
    cell_size: int = 10
    contrast: float = 1.0
    foreground: Color = RGB(255, 255, 255)
    background: Color = RGB(0, 0, 0)
    shape: Shape = Shape.CIRCLE
    invert: bool = False
    threshold: bool = False
    overlap: float = 0.0
    edge_detection: bool = False
    edge_sensitivity: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "foreground", parse_color(self.foreground))
        object.__setattr__(self, "background", parse_color(self.background))
        object.__setattr__(self, "shape", Shape(self.shape))

    def replace(self, **changes) -> "ProcessorSettings":
        return dataclasses.replace(self, **changes)

    def swap_colors(self) -> "ProcessorSettings":
        return self.replace(foreground=self.background,
                            background=self.foreground)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["foreground"] = to_hex(self.foreground)
        data["background"] = to_hex(self.background)
        data["shape"] = self.shape.value
        return data

    @staticmethod
    def from_dict(obj: Dict[str, Any], base: "ProcessorSettings" = None) -> "ProcessorSettings":
        """Build settings from a dict, falling back to `base` for missing keys."""
        base = base or DEFAULT_SETTINGS
        known = {f.name for f in dataclasses.fields(ProcessorSettings)}
        changes = {k: v for k, v in obj.items() if k in known}
        for key in ("cell_size",):
            if key in changes:
                changes[key] = int(changes[key])
        for key in ("contrast", "overlap", "edge_sensitivity"):
            if key in changes:
                changes[key] = float(changes[key])
        for key in ("invert", "threshold", "edge_detection"):
            if key in changes:
                changes[key] = bool(changes[key])
        return base.replace(**changes)


DEFAULT_SETTINGS = ProcessorSettings(
    cell_size=10,
    contrast=1.5,
    foreground=RGB(255, 255, 255),
    background=RGB(0x1a, 0x1a, 0x1a),
    shape=Shape.CIRCLE,
    invert=False,
    threshold=False,
    overlap=0.2,
    edge_detection=True,
    edge_sensitivity=1.0,
)


@dataclass
class Preset:
    settings: ProcessorSettings = field(default_factory=lambda: DEFAULT_SETTINGS)
    preview_fps: int = DEFAULT_PREVIEW_FPS
    version: int = PRESET_VERSION

    def to_json(self) -> str:
        return json.dumps({
            "version": self.version,
            "settings": self.settings.to_dict(),
            "preview_fps": self.preview_fps,
        }, indent=2)

    @staticmethod
    def from_json(s: str) -> "Preset":
        obj = json.loads(s)
        return Preset(
            settings=ProcessorSettings.from_dict(dict(obj.get("settings", {}))),
            preview_fps=int(obj.get("preview_fps", DEFAULT_PREVIEW_FPS)),
            version=int(obj.get("version", PRESET_VERSION)),
        )


def save_preset(preset: Preset, path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(preset.to_json())
    logger.info("Saved preset: %s", path)


def load_preset(path: str) -> Preset:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Preset file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return Preset.from_json(f.read())
