# core/batch_processor.py

import logging
from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import imagehash
from tqdm import tqdm

from core.exceptions import VideoDedupError
from core.fingerprint import fingerprint_file

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SkippedAsset:
    """An asset left out of clustering, with the reason"""
    asset_id: str
    reason: str
    error_type: str


class FingerprintBatchProcessor:
    """
    Fingerprint the frames of many assets with a bounded worker pool
    """

    def __init__(self,
                 max_concurrency: int = 100,
                 use_processes: bool = False,
                 show_progress: bool = True,
                 fingerprint_func: Callable = fingerprint_file):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self.use_processes = use_processes
        self.show_progress = show_progress
        self.fingerprint_func = fingerprint_func

    def fingerprint_assets(self,
                           assets: Dict[str, List[str]],
                           progress_callback: Optional[ProgressCallback] = None
                           ) -> Tuple[Dict[str, List[imagehash.ImageHash]], List[SkippedAsset]]:
        """
        Fingerprint every frame of every asset

        Args:
            assets: Asset ID -> ordered frame paths
            progress_callback: Called with (processed, total) after each frame

        Returns:
            (fingerprints, skipped). fingerprints maps each successful asset
            to its fingerprints in frame order. An asset with any frame that
            fails to decode is left out of fingerprints and listed in
            skipped instead.
        """
        total = sum(len(frames) for frames in assets.values())
        results = {asset_id: [None] * len(frames) for asset_id, frames in assets.items()}
        failures = {}

        executor_class = ProcessPoolExecutor if self.use_processes else ThreadPoolExecutor
        processed = 0

        with executor_class(max_workers=self.max_concurrency) as executor:
            futures = {
                executor.submit(self.fingerprint_func, frame_path): (asset_id, index)
                for asset_id, frames in assets.items()
                for index, frame_path in enumerate(frames)
            }

            with tqdm(total=total, desc="Fingerprinting frames",
                      disable=not self.show_progress) as progress:
                for future in as_completed(futures):
                    asset_id, index = futures[future]
                    try:
                        results[asset_id][index] = future.result()
                    except VideoDedupError as e:
                        if asset_id not in failures:
                            logger.warning("Skipping asset %s: %s", asset_id, e)
                            failures[asset_id] = e

                    processed += 1
                    progress.update(1)
                    if progress_callback:
                        progress_callback(processed, total)

        fingerprints = {
            asset_id: hashes
            for asset_id, hashes in results.items()
            if asset_id not in failures
        }
        skipped = [
            SkippedAsset(asset_id, str(error), type(error).__name__)
            for asset_id, error in sorted(failures.items())
        ]

        logger.info("Fingerprinted %d frames across %d assets (%d skipped)",
                    total, len(fingerprints), len(skipped))

        return fingerprints, skipped
