"""
Reticulations

Halftone-style stylizer for images and video: brightness is sampled over
a grid of cells and each cell is redrawn as a shape sized by it.
"""

from .color import RGB, TRANSPARENT, parse_color
from .rasterizer import render
from .settings import ProcessorSettings, Shape, DEFAULT_SETTINGS

__all__ = [
    'RGB',
    'TRANSPARENT',
    'parse_color',
    'render',
    'ProcessorSettings',
    'Shape',
    'DEFAULT_SETTINGS'
]
