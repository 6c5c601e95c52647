"""
Headless rendering: stylise one image or video from the command line.
"""

import argparse
import logging
import sys

from .color import parse_color
from .export import VideoExporter, VideoSettings, export_image
from .logconf import setup_logging
from .processor import VideoProcessor, is_video_path, load_image
from .rasterizer import render
from .settings import DEFAULT_SETTINGS, Shape, load_preset
from .snippet import write_snippet

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="reticulations-render",
        description="Render an image or video as a grid of brightness-sized shapes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  reticulations-render photo.jpg out.png --shape star --cell-size 12
  reticulations-render clip.mp4 out.mp4 --fps 24 --fg "#ff3366" --bg transparent
  reticulations-render photo.jpg out.png --preset look.json --snippet look.py
"""
    )
    parser.add_argument("input", help="Source image or video")
    parser.add_argument("output", help="Output image or video path")
    parser.add_argument("--preset", help="JSON preset to start from")
    parser.add_argument("--cell-size", type=int, help="Grid cell size in pixels")
    parser.add_argument("--contrast", type=float, help="Contrast exponent (1 = linear)")
    parser.add_argument("--shape", choices=[s.value for s in Shape])
    parser.add_argument("--fg", help="Foreground colour or 'transparent'")
    parser.add_argument("--bg", help="Background colour or 'transparent'")
    parser.add_argument("--invert", action="store_true", default=None,
                        help="Invert brightness before sizing")
    parser.add_argument("--threshold", action="store_true", default=None,
                        help="Uniform size: shapes are either full size or absent")
    parser.add_argument("--overlap", type=float, help="Extra size factor, e.g. 0.2")
    parser.add_argument("--edge-detection", dest="edge_detection",
                        action=argparse.BooleanOptionalAction, default=None,
                        help="Boost shapes in high-contrast cells")
    parser.add_argument("--sensitivity", type=float, help="Edge boost sensitivity")
    parser.add_argument("--fps", type=float, help="Export frame rate for videos")
    parser.add_argument("--snippet", help="Also write a standalone renderer script here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def settings_from_args(args):
    """Start from the preset (or defaults) and apply explicit flags."""
    preview_fps = None
    if args.preset:
        preset = load_preset(args.preset)
        settings, preview_fps = preset.settings, preset.preview_fps
    else:
        settings = DEFAULT_SETTINGS

    changes = {}
    if args.cell_size is not None:
        changes["cell_size"] = args.cell_size
    if args.contrast is not None:
        changes["contrast"] = args.contrast
    if args.shape is not None:
        changes["shape"] = Shape(args.shape)
    if args.fg is not None:
        changes["foreground"] = parse_color(args.fg)
    if args.bg is not None:
        changes["background"] = parse_color(args.bg)
    if args.invert is not None:
        changes["invert"] = args.invert
    if args.threshold is not None:
        changes["threshold"] = args.threshold
    if args.overlap is not None:
        changes["overlap"] = args.overlap
    if args.edge_detection is not None:
        changes["edge_detection"] = args.edge_detection
    if args.sensitivity is not None:
        changes["edge_sensitivity"] = args.sensitivity

    fps = args.fps or preview_fps
    return settings.replace(**changes), fps


def run(args):
    settings, fps = settings_from_args(args)

    if is_video_path(args.input):
        video_settings = VideoSettings(fps=fps) if fps else VideoSettings()
        with VideoProcessor(args.input) as video:
            result = VideoExporter(settings, video_settings).export(
                video, args.output,
                progress=lambda p: logger.debug("Export progress: %d%%", p))
        if result.transcoded:
            logger.info("Exported %d frame(s) to %s", result.frame_count, result.path)
        else:
            logger.warning("Exported %d frame(s) to %s (final format unavailable)",
                           result.frame_count, result.path)
    else:
        export_image(render(load_image(args.input), settings), args.output)

    if args.snippet:
        write_snippet(settings, args.snippet)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=False)

    try:
        run(args)
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Error: %s", e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
