# tests/conftest.py

import logging

import cv2
import numpy as np
import pytest

from utils import logging_config


@pytest.fixture(autouse=True)
def restore_logging():
    """Remove handlers installed by setup_logging during a test"""
    yield
    root = logging.getLogger()
    while logging_config._installed_handlers:
        handler = logging_config._installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def smooth_image(seed: int, size=(240, 320), channels: int = 3) -> np.ndarray:
    """Random low-frequency image: coarse noise upscaled with cubic interpolation"""
    rng = np.random.default_rng(seed)
    shape = (6, 8, channels) if channels > 1 else (6, 8)
    coarse = rng.integers(30, 200, shape, dtype=np.uint8)
    return cv2.resize(coarse, (size[1], size[0]), interpolation=cv2.INTER_CUBIC)


@pytest.fixture
def keyframes_dir(tmp_path):
    """
    Keyframes of five videos:
    video_a and video_b share content, video_c is different,
    video_d has a corrupt frame, video_e has no frames
    """
    root = tmp_path / "keyframes"

    frames = {
        "video_a": [smooth_image(1), smooth_image(2), smooth_image(3)],
        "video_b": [smooth_image(1), smooth_image(2)],
        "video_c": [smooth_image(10), smooth_image(11), smooth_image(12)],
    }
    for asset_id, images in frames.items():
        asset_dir = root / asset_id
        asset_dir.mkdir(parents=True)
        for idx, img in enumerate(images, 1):
            cv2.imwrite(str(asset_dir / f"keyframe_{idx:03d}.png"), img)

    corrupt_dir = root / "video_d"
    corrupt_dir.mkdir()
    cv2.imwrite(str(corrupt_dir / "keyframe_001.png"), smooth_image(20))
    (corrupt_dir / "keyframe_002.jpg").write_text("not an image")

    (root / "video_e").mkdir()

    return root
