"""
Export Module

Drives the rasterizer over every export timestamp of a video, writes the
rendered frames to an intermediate container with OpenCV and transcodes
that into the final deliverable with ffmpeg.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from .rasterizer import render
from .settings import ProcessorSettings, DEFAULT_PREVIEW_FPS

logger = logging.getLogger(__name__)

# Share of the progress bar spent rendering; transcoding fills the rest
RENDER_PROGRESS = 50


@dataclass
class VideoSettings:
    """Settings for video output."""
    fps: float = DEFAULT_PREVIEW_FPS
    intermediate_codec: str = 'MJPG'
    intermediate_ext: str = 'avi'
    video_codec: str = 'libx264'
    preset: str = 'ultrafast'
    audio_codec: str = 'aac'
    keep_audio: bool = True


@dataclass
class ExportResult:
    path: str
    transcoded: bool
    frame_count: int


def find_ffmpeg() -> Optional[str]:
    return shutil.which("ffmpeg")


def transcode_command(ffmpeg: str,
                      intermediate_path: str,
                      output_path: str,
                      audio_source: Optional[str] = None,
                      video_codec: str = 'libx264',
                      preset: str = 'ultrafast',
                      audio_codec: str = 'aac') -> List[str]:
    """
    Build the ffmpeg argument list for the final transcode.

    The optional audio source is mapped with a trailing `?` so a source
    without an audio stream is not an error.
    """
    cmd = [ffmpeg, '-y', '-i', intermediate_path]
    if audio_source:
        cmd += ['-i', audio_source, '-map', '0:v:0', '-map', '1:a:0?']
    cmd += [
        '-c:v', video_codec,
        '-preset', preset,
        '-pix_fmt', 'yuv420p',
        # yuv420p needs even dimensions
        '-vf', 'pad=ceil(iw/2)*2:ceil(ih/2)*2',
    ]
    if audio_source:
        cmd += ['-c:a', audio_codec, '-shortest']
    cmd.append(output_path)
    return cmd


def export_image(image: Image.Image, output_path: str) -> str:
    """Save a rendered raster; the format follows the extension (PNG by default)."""
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    ext = os.path.splitext(output_path)[1].lower()
    if ext in ('.jpg', '.jpeg', '.bmp') and image.mode == 'RGBA':
        image = image.convert('RGB')
    if not ext:
        image.save(output_path, format='PNG')
    else:
        image.save(output_path)
    logger.info("Exported image: %s", output_path)
    return output_path


class VideoExporter:
    """
    Render a video frame by frame and encode the result.
    """

    def __init__(self,
                 settings: ProcessorSettings,
                 video_settings: Optional[VideoSettings] = None,
                 ffmpeg_path: Optional[str] = None):
        """
        Args:
            settings: Rasterizer settings used for every frame
            video_settings: Output options
            ffmpeg_path: ffmpeg binary; looked up on PATH when omitted
        """
        self.settings = settings
        self.video_settings = video_settings or VideoSettings()
        self.ffmpeg_path = ffmpeg_path

    def render_frames(self, video, times: List[float]) -> Iterator[Image.Image]:
        """Seek to each timestamp and yield the rendered frame."""
        target = None
        for t in times:
            frame = video.frame_at(t)
            if frame is None:
                logger.warning("No frame at %.3fs, skipping", t)
                continue
            target = render(frame, self.settings, target)
            yield target

    def export(self,
               video,
               output_path: str,
               progress: Optional[Callable[[int], None]] = None) -> ExportResult:
        """
        Export a stylised copy of `video`.

        Args:
            video: VideoProcessor (or anything with frame_at / export_times)
            output_path: Final file path, normally .mp4
            progress: Called with a percentage in [0, 100]

        Returns:
            ExportResult. When ffmpeg is unavailable or fails the
            intermediate file is kept and returned with transcoded=False.
        """
        fps = self.video_settings.fps
        times = video.export_times(fps)
        if not times:
            raise ValueError("No frames to export")

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        base = os.path.splitext(output_path)[0]
        intermediate_path = f"{base}.intermediate.{self.video_settings.intermediate_ext}"

        total = len(times)

        def on_frame(index):
            if progress:
                progress(int(round(index / total * RENDER_PROGRESS)))

        count = self.write_intermediate(
            self.render_frames(video, times), intermediate_path, fps, on_frame)
        if count == 0:
            if os.path.exists(intermediate_path):
                os.remove(intermediate_path)
            raise ValueError("No frames to export")
        logger.info("Rendered %d frame(s) to %s", count, intermediate_path)

        audio_source = getattr(video, 'video_path', None) if self.video_settings.keep_audio else None
        transcoded = self.transcode(intermediate_path, output_path, audio_source)

        if transcoded:
            os.remove(intermediate_path)
            result = ExportResult(output_path, True, count)
        else:
            fallback = f"{base}.{self.video_settings.intermediate_ext}"
            os.replace(intermediate_path, fallback)
            logger.warning("Final format unavailable, kept %s", fallback)
            result = ExportResult(fallback, False, count)

        if progress:
            progress(100)
        return result

    def write_intermediate(self,
                           frames: Iterator[Image.Image],
                           path: str,
                           fps: float,
                           on_frame: Optional[Callable[[int], None]] = None) -> int:
        """Write frames with OpenCV; returns the number of frames written."""
        writer = None
        size: Optional[Tuple[int, int]] = None
        count = 0
        try:
            for frame in frames:
                if writer is None:
                    size = frame.size
                    fourcc = cv2.VideoWriter_fourcc(*self.video_settings.intermediate_codec)
                    writer = cv2.VideoWriter(path, fourcc, fps, size)
                    if not writer.isOpened():
                        raise RuntimeError(
                            f"Could not open video writer for {path}")
                if frame.size != size:
                    frame = frame.resize(size, Image.Resampling.NEAREST)
                writer.write(self._pil_to_cv(frame))
                count += 1
                if on_frame:
                    on_frame(count)
        finally:
            if writer is not None:
                writer.release()
        return count

    def transcode(self,
                  intermediate_path: str,
                  output_path: str,
                  audio_source: Optional[str] = None) -> bool:
        """Run ffmpeg; False when it is missing or fails."""
        ffmpeg = self.ffmpeg_path or find_ffmpeg()
        if not ffmpeg:
            logger.warning("FFmpeg not found. Keeping intermediate video.")
            return False

        cmd = transcode_command(
            ffmpeg, intermediate_path, output_path, audio_source,
            video_codec=self.video_settings.video_codec,
            preset=self.video_settings.preset,
            audio_codec=self.video_settings.audio_codec)
        logger.debug("Running: %s", " ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            logger.warning("FFmpeg not found at %s. Keeping intermediate video.", ffmpeg)
            return False

        if result.returncode != 0:
            logger.error("FFmpeg error: %s", result.stderr)
            return False
        return True

    def _pil_to_cv(self, image: Image.Image) -> np.ndarray:
        """Convert PIL Image to OpenCV BGR format."""
        if image.mode != 'RGB':
            image = image.convert('RGB')
        return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)
