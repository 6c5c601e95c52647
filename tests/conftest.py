import cv2
import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def make_video(tmp_path):
    """Write a small MJPG/AVI clip whose frames brighten over time."""
    def _make(name="clip.avi", frames=10, fps=10.0, size=(32, 24)):
        path = str(tmp_path / name)
        writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), fps, size)
        assert writer.isOpened()
        for i in range(frames):
            level = int(255 * i / max(1, frames - 1))
            writer.write(np.full((size[1], size[0], 3), level, dtype=np.uint8))
        writer.release()
        return path
    return _make


@pytest.fixture
def gradient_image():
    """A 40x30 RGB horizontal gradient with a dark square in it."""
    arr = np.tile(np.linspace(0, 255, 40, dtype=np.uint8), (30, 1))
    arr = np.stack([arr, arr, arr], axis=2)
    arr[5:15, 5:15] = 0
    return Image.fromarray(arr)
