import logging
import math
import os

import cv2
from PIL import Image, ImageOps

from .settings import MAX_DIMENSION, DISPLAY_FPS

logger = logging.getLogger(__name__)

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".gif", ".webp"}
VIDEO_EXTS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}


def is_video_path(path):
    return os.path.splitext(path)[1].lower() in VIDEO_EXTS


def fit_within(width, height, max_dimension=MAX_DIMENSION):
    """Scale (width, height) down so neither side exceeds max_dimension."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, int(width * ratio)), max(1, int(height * ratio))


def load_image(path, max_dimension=MAX_DIMENSION):
    """
    Load a still image as an RGBA source raster.

    EXIF orientation is applied and the image is scaled down so its longer
    side is at most `max_dimension`.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image file not found: {path}")

    img = Image.open(path)
    img = ImageOps.exif_transpose(img)
    img.load()

    size = fit_within(img.width, img.height, max_dimension)
    if size != img.size:
        logger.debug("Scaling %s from %s to %s", path, img.size, size)
        img = img.resize(size, Image.Resampling.LANCZOS)

    return img.convert("RGBA")


class VideoProcessor:
    def __init__(self, video_path):
        if not os.path.exists(video_path):
            raise FileNotFoundError(f"Video file not found: {video_path}")

        self.video_path = video_path
        self.cap = cv2.VideoCapture(video_path)

        if not self.cap.isOpened():
            raise ValueError(f"Could not open video file: {video_path}")

        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.frame_count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.duration = self.frame_count / self.fps if self.fps > 0 else 0
        self.aspect_ratio = self.width / self.height if self.height > 0 else 0

    def get_metadata(self):
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
            "duration": self.duration,
            "aspect_ratio": self.aspect_ratio
        }

    def read_frame(self, loop=True):
        """
        Decode the next frame as an RGB PIL Image.

        With `loop`, reaching the end of the stream rewinds to the first
        frame, matching a looping preview. Returns None when no frame can
        be decoded.
        """
        ret, frame = self.cap.read()
        if not ret and loop:
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ret, frame = self.cap.read()
        if not ret:
            return None
        return self._to_pil(frame)

    def skip_frame(self, loop=True):
        """Advance one frame without decoding it."""
        if not self.cap.grab() and loop:
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            self.cap.grab()

    def advance(self, count, decode=True, loop=True):
        """
        Move `count` frames forward.

        With `decode` the last of them is returned as an RGB PIL Image;
        otherwise frames are only grabbed and None is returned.
        """
        if count <= 0:
            return None
        for _ in range(count - 1 if decode else count):
            self.skip_frame(loop)
        return self.read_frame(loop) if decode else None

    def frame_at(self, seconds):
        """Seek to `seconds` and decode that frame, or None past the end."""
        self.cap.set(cv2.CAP_PROP_POS_MSEC, seconds * 1000.0)
        ret, frame = self.cap.read()
        if not ret:
            return None
        return self._to_pil(frame)

    def export_times(self, fps):
        """
        Timestamps an export at `fps` visits.

        floor(duration * fps) frames, the i-th at i / fps seconds.
        """
        if fps <= 0:
            return []
        total = int(math.floor(self.duration * fps))
        return [i / fps for i in range(total)]

    def _to_pil(self, frame):
        # Convert BGR to RGB
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return Image.fromarray(frame_rgb)

    def close(self):
        self.cap.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        if hasattr(self, 'cap') and self.cap.isOpened():
            self.cap.release()


class FrameSkipper:
    """
    Admission policy for the live preview.

    The display ticks at `display_fps`; only every `skip`-th tick is
    rendered so the preview runs at roughly `target_fps`.
    """

    def __init__(self, target_fps, display_fps=DISPLAY_FPS):
        self.display_fps = display_fps
        self.skip = 1
        self.count = 0
        self.set_target_fps(target_fps)

    def set_target_fps(self, target_fps):
        if target_fps <= 0:
            self.skip = 1
        else:
            # Half rounds up: 30 / 12 gives a skip of 3
            self.skip = max(1, int(math.floor(self.display_fps / target_fps + 0.5)))

    def admit(self):
        admitted = self.count % self.skip == 0
        self.count += 1
        return admitted

    def reset(self):
        self.count = 0


class PlaybackClock:
    """
    Real-time pacing for the live preview.

    A video at `source_fps` shown on a display ticking at `display_fps`
    moves source_fps / display_fps frames per tick; `advance()` returns the
    whole number of frames due on this tick, carrying the fraction over.
    """

    def __init__(self, source_fps, display_fps=DISPLAY_FPS):
        self.display_fps = display_fps
        self.step = source_fps / display_fps if source_fps > 0 else 1.0
        self.ticks = 0

    def advance(self):
        before = math.floor(self.ticks * self.step)
        self.ticks += 1
        return math.floor(self.ticks * self.step) - before

    def reset(self):
        self.ticks = 0
