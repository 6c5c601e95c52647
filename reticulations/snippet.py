"""
Standalone export.

Emits a single self-contained Python script that carries the colour,
settings, shape and rasterizer code of this package plus a frozen copy of
one ProcessorSettings, so a look can be reproduced without the app.
"""
import inspect
import logging
import os
import pprint

from . import color, settings, shapes, rasterizer
from .settings import ProcessorSettings

logger = logging.getLogger(__name__)

SNIPPET_MODULES = (color, settings, shapes, rasterizer)

HEADER = '''\
"""
Reticulations standalone renderer.

Usage: python {name} <input image> <output image>

Requires Pillow and numpy.
"""
import sys

'''

FOOTER = '''

SETTINGS = ProcessorSettings(**{settings})


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 2:
        print("Usage: python {name} <input image> <output image>")
        return 1
    source = Image.open(argv[0])
    result = render(source, SETTINGS)
    if argv[1].lower().endswith((".jpg", ".jpeg", ".bmp")):
        result = result.convert("RGB")
    result.save(argv[1])
    return 0


if __name__ == "__main__":
    sys.exit(main())
'''


def module_body(module) -> str:
    """Source of `module` without its future and package-relative imports."""
    lines = []
    for line in inspect.getsource(module).splitlines():
        stripped = line.strip()
        if stripped.startswith("from __future__ import") or stripped.startswith("from ."):
            continue
        lines.append(line)
    return "\n".join(lines).strip() + "\n"


def build_snippet(settings: ProcessorSettings, name: str = "reticulations_snippet.py") -> str:
    parts = [HEADER.format(name=name)]
    for module in SNIPPET_MODULES:
        short = module.__name__.rsplit(".", 1)[-1]
        parts.append(f"\n# ---- {short} ----\n\n")
        parts.append(module_body(module))
    snapshot = pprint.pformat(settings.to_dict(), indent=4, sort_dicts=True)
    parts.append(FOOTER.format(name=name, settings=snapshot))
    return "".join(parts)


def write_snippet(settings: ProcessorSettings, path: str) -> str:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(build_snippet(settings, os.path.basename(path)))
    logger.info("Wrote standalone snippet: %s", path)
    return path
