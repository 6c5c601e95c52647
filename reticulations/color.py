from dataclasses import dataclass
from typing import Tuple, Union

from PIL import ImageColor


@dataclass(frozen=True)
class RGB:
    """An opaque colour with 8-bit channels."""
    r: int
    g: int
    b: int

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, 255)


class Transparent:
    """Sentinel colour: skip the fill entirely."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "TRANSPARENT"

    def __reduce__(self):
        return (Transparent, ())


TRANSPARENT = Transparent()

Color = Union[RGB, Transparent]


def parse_color(value) -> Color:
    """
    Parse a colour value into RGB or TRANSPARENT.

    Accepts an existing colour, an (r, g, b[, a]) tuple, or any string
    Pillow's ImageColor understands (#rgb, #rrggbb, #rrggbbaa, rgb(),
    rgba(), hsl(), CSS names) plus the keyword "transparent".
    Any colour with zero alpha is treated as transparent.

    Raises:
        ValueError: If the string is not a recognised colour.
    """
    if isinstance(value, (RGB, Transparent)):
        return value

    if isinstance(value, (tuple, list)):
        if len(value) == 4 and int(value[3]) == 0:
            return TRANSPARENT
        r, g, b = (max(0, min(255, int(c))) for c in value[:3])
        return RGB(r, g, b)

    text = str(value).strip().lower()
    if text == "transparent":
        return TRANSPARENT

    # ImageColor is strict about whitespace inside rgba(...)
    rgba = ImageColor.getcolor(text.replace(" ", ""), "RGBA")
    if rgba[3] == 0:
        return TRANSPARENT
    return RGB(rgba[0], rgba[1], rgba[2])


def is_transparent(color: Color) -> bool:
    return color is TRANSPARENT


def to_hex(color: Color) -> str:
    if color is TRANSPARENT:
        return "transparent"
    return f"#{color.r:02x}{color.g:02x}{color.b:02x}"
