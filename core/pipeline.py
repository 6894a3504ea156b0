# core/pipeline.py

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import imagehash

from config import DuplicateDetectionConfig
from core.batch_processor import FingerprintBatchProcessor, ProgressCallback, SkippedAsset
from core.clustering import cluster, cluster_transitive
from core.exceptions import EmptySetError
from utils.file_utils import discover_assets
from utils.logging_config import PerformanceLogger

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    """Outcome of one deduplication run"""
    groups: Dict[str, List[str]]
    skipped: List[SkippedAsset] = field(default_factory=list)
    fingerprints: Dict[str, List[imagehash.ImageHash]] = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return sum(len(dups) for dups in self.groups.values())


class DuplicatePipeline:
    """
    Keyframe directory -> fingerprints -> duplicate groups
    """

    def __init__(self,
                 detection: DuplicateDetectionConfig = None,
                 max_concurrency: int = 100,
                 show_progress: bool = True):
        self.detection = detection or DuplicateDetectionConfig()
        self.processor = FingerprintBatchProcessor(
            max_concurrency=max_concurrency,
            show_progress=show_progress
        )
        self.performance = PerformanceLogger(logger)

    def run(self, keyframes_dir: str,
            progress_callback: Optional[ProgressCallback] = None) -> DedupResult:
        """Find duplicate assets among the sub-directories of keyframes_dir"""
        assets = discover_assets(keyframes_dir)
        logger.info("Processing %d assets from %s", len(assets), keyframes_dir)
        return self.run_assets(assets, progress_callback)

    def run_assets(self, assets: Dict[str, List[str]],
                   progress_callback: Optional[ProgressCallback] = None) -> DedupResult:
        """Find duplicates among already discovered assets"""
        skipped = []
        with_frames = {}
        for asset_id, frames in assets.items():
            if frames:
                with_frames[asset_id] = frames
            else:
                error = EmptySetError(asset_id)
                logger.warning("Skipping asset %s: %s", asset_id, error)
                skipped.append(SkippedAsset(asset_id, str(error), type(error).__name__))

        with self.performance.track("fingerprinting", assets=len(with_frames)):
            fingerprints, failed = self.processor.fingerprint_assets(
                with_frames, progress_callback
            )
        skipped.extend(failed)
        skipped.sort(key=lambda s: s.asset_id)

        # Clustering needs every fingerprint set complete
        resolver = cluster_transitive if self.detection.transitive else cluster
        with self.performance.track("clustering", assets=len(fingerprints)):
            groups = resolver(fingerprints, self.detection)

        result = DedupResult(groups=groups, skipped=skipped, fingerprints=fingerprints)
        logger.info("Found %d duplicates in %d groups",
                    result.duplicate_count,
                    sum(1 for dups in groups.values() if dups))
        return result


def save_duplicates(groups: Dict[str, List[str]], path: str):
    """Write the duplicate map as UTF-8 JSON with two-space indentation"""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(groups, f, indent=2, ensure_ascii=False)
    logger.info("Duplicate map saved to %s", path)


def load_duplicates(path: str) -> Dict[str, List[str]]:
    """Read a duplicate map written by save_duplicates, keeping its order"""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
