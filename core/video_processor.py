# core/video_processor.py

import logging
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Tuple

import cv2
import numpy as np
from tqdm import tqdm

from config import KeyframeConfig
from core.exceptions import KeyframeExtractionError
from utils.file_utils import get_image_files, get_video_files

logger = logging.getLogger(__name__)

FRAME_PATTERN = "keyframe_{:03d}.jpg"


class VideoProcessor:
    """
    Sample keyframes from videos into one image directory per video
    """

    def __init__(self, config: KeyframeConfig = None):
        self.config = config or KeyframeConfig()

    def extract_keyframes(self, video_path: str, output_dir: str) -> List[str]:
        """
        Extract keyframes from video into output_dir

        Methods:
        - 'iframe': Intra-coded frames selected by ffmpeg
        - 'uniform': Every `interval`-th frame
        - 'scene': Frames at scene changes

        Returns:
            Paths of the written frames, in order
        """
        Path(output_dir).mkdir(parents=True, exist_ok=True)

        if self.config.method == 'iframe':
            self._extract_iframes(video_path, output_dir)
            return get_image_files(output_dir)

        cap = cv2.VideoCapture(video_path)

        if not cap.isOpened():
            raise KeyframeExtractionError(video_path, "cannot open video")

        try:
            if self.config.method == 'uniform':
                keyframes = self._extract_uniform_keyframes(cap)
            else:
                keyframes = self._extract_scene_keyframes(cap)
        finally:
            cap.release()

        if not keyframes:
            raise KeyframeExtractionError(video_path, "no frames decoded")

        written = []
        for idx, frame in enumerate(keyframes, 1):
            frame_path = str(Path(output_dir) / FRAME_PATTERN.format(idx))
            if not cv2.imwrite(frame_path, frame):
                raise KeyframeExtractionError(video_path, f"cannot write {frame_path}")
            written.append(frame_path)

        return written

    def _extract_iframes(self, video_path: str, output_dir: str):
        """Let ffmpeg write every I-frame as a JPEG"""
        ffmpeg = shutil.which('ffmpeg')
        if ffmpeg is None:
            raise KeyframeExtractionError(video_path, "ffmpeg not found on PATH")

        command = [
            ffmpeg, '-hide_banner', '-loglevel', 'error', '-y',
            '-i', str(video_path),
            '-vf', "select='eq(pict_type,PICT_TYPE_I)'",
            '-vsync', 'vfr',
            str(Path(output_dir) / 'keyframe_%03d.jpg')
        ]
        completed = subprocess.run(command, capture_output=True, text=True)
        if completed.returncode != 0:
            raise KeyframeExtractionError(video_path, completed.stderr.strip())

    def _extract_uniform_keyframes(self, cap: cv2.VideoCapture) -> List[np.ndarray]:
        """Extract frames at uniform intervals"""
        keyframes = []
        frame_idx = 0

        while True:
            ret, frame = cap.read()
            if not ret:
                break

            if frame_idx % self.config.interval == 0:
                keyframes.append(frame)

            frame_idx += 1

        return keyframes

    def _extract_scene_keyframes(self, cap: cv2.VideoCapture) -> List[np.ndarray]:
        """
        Extract keyframes at scene changes using histogram difference
        """
        keyframes = []
        prev_hist = None

        while True:
            ret, frame = cap.read()
            if not ret:
                break

            # Compute color histogram
            hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
            hist = cv2.calcHist([hsv], [0, 1, 2], None,
                               [8, 8, 8], [0, 256, 0, 256, 0, 256])
            hist = cv2.normalize(hist, hist).flatten()

            if prev_hist is None:
                # Always keep the first frame
                keyframes.append(frame)
            elif cv2.compareHist(prev_hist, hist, cv2.HISTCMP_CORREL) < self.config.scene_threshold:
                keyframes.append(frame)

            prev_hist = hist

        return keyframes

    def extract_keyframes_for_directory(self, video_dir: str,
                                        keyframes_dir: str = None
                                        ) -> Tuple[Dict[str, int], List[KeyframeExtractionError]]:
        """
        Sample keyframes of every video in video_dir

        Frames of <video_dir>/<name>.mp4 go to <keyframes_dir>/<name>/.

        Returns:
            (frame count per asset, failures). A failing video does not stop
            the others.
        """
        keyframes_dir = keyframes_dir or str(Path(video_dir) / 'keyframes')
        videos = get_video_files(video_dir, self.config.video_extensions)
        logger.info("Extracting keyframes from %d videos", len(videos))

        extracted = {}
        failures = []

        with ThreadPoolExecutor(max_workers=self.config.max_parallel) as executor:
            futures = {
                executor.submit(
                    self.extract_keyframes,
                    video,
                    str(Path(keyframes_dir) / Path(video).stem)
                ): Path(video).stem
                for video in videos
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Extracting keyframes"):
                asset_id = futures[future]
                try:
                    extracted[asset_id] = len(future.result())
                except KeyframeExtractionError as e:
                    logger.error("%s", e)
                    failures.append(e)

        return dict(sorted(extracted.items())), failures
