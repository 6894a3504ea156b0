# tests/test_pipeline.py

import json
import threading
from pathlib import Path

import pytest

from config import DuplicateDetectionConfig
from core.batch_processor import FingerprintBatchProcessor
from core.exceptions import DecodeError
from core.pipeline import DuplicatePipeline, load_duplicates, save_duplicates
from utils.file_utils import discover_assets


def test_discover_assets(keyframes_dir):
    assets = discover_assets(str(keyframes_dir))

    assert list(assets) == ["video_a", "video_b", "video_c", "video_d", "video_e"]
    assert [Path(p).name for p in assets["video_a"]] == [
        "keyframe_001.png", "keyframe_002.png", "keyframe_003.png"
    ]
    assert assets["video_e"] == []


def test_discover_assets_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        discover_assets(str(tmp_path / "nope"))


def test_pipeline_groups_duplicates_and_reports_skips(keyframes_dir):
    pipeline = DuplicatePipeline(max_concurrency=4, show_progress=False)

    result = pipeline.run(str(keyframes_dir))

    assert result.groups == {"video_a": ["video_b"], "video_c": []}
    assert [(s.asset_id, s.error_type) for s in result.skipped] == [
        ("video_d", "DecodeError"),
        ("video_e", "EmptySetError"),
    ]
    assert "keyframe_002.jpg" in result.skipped[0].reason
    assert result.duplicate_count == 1


def test_skipped_assets_never_reported_as_clear(keyframes_dir):
    result = DuplicatePipeline(show_progress=False).run(str(keyframes_dir))

    clustered = set(result.groups) | {d for dups in result.groups.values() for d in dups}
    assert not clustered & {s.asset_id for s in result.skipped}
    assert set(result.fingerprints) == clustered


def test_fingerprints_kept_in_frame_order(keyframes_dir):
    result = DuplicatePipeline(max_concurrency=8, show_progress=False).run(str(keyframes_dir))

    # video_b's frames are the first two frames of video_a
    assert result.fingerprints["video_b"] == result.fingerprints["video_a"][:2]
    assert len(result.fingerprints["video_c"]) == 3


def test_progress_counter_is_monotonic(keyframes_dir):
    calls = []
    lock = threading.Lock()

    def on_progress(processed, total):
        with lock:
            calls.append((processed, total))

    DuplicatePipeline(max_concurrency=3, show_progress=False).run(
        str(keyframes_dir), progress_callback=on_progress
    )

    # 3 + 2 + 3 + 2 frames; video_e has none
    assert [p for p, _ in calls] == list(range(1, 11))
    assert {t for _, t in calls} == {10}


def test_single_worker(keyframes_dir):
    result = DuplicatePipeline(max_concurrency=1, show_progress=False).run(str(keyframes_dir))
    assert result.groups == {"video_a": ["video_b"], "video_c": []}


def test_strict_thresholds_still_match_exact_copies(keyframes_dir):
    """video_b matches 2 of video_a's 3 frames: ratio 2/2 with the smaller set"""
    detection = DuplicateDetectionConfig(hash_threshold=0, match_ratio=1.0)
    result = DuplicatePipeline(detection, show_progress=False).run(str(keyframes_dir))

    assert result.groups == {"video_a": ["video_b"], "video_c": []}


def test_transitive_option_uses_union_find(keyframes_dir):
    detection = DuplicateDetectionConfig(transitive=True)
    result = DuplicatePipeline(detection, show_progress=False).run(str(keyframes_dir))

    assert result.groups == {"video_a": ["video_b"], "video_c": []}


def test_decode_error_only_affects_its_asset():
    def fake_fingerprint(path):
        if path == "bad.png":
            raise DecodeError(path, "corrupt")
        return path

    processor = FingerprintBatchProcessor(
        max_concurrency=2, show_progress=False, fingerprint_func=fake_fingerprint
    )
    fingerprints, skipped = processor.fingerprint_assets({
        "good": ["1.png", "2.png"],
        "broken": ["3.png", "bad.png", "4.png"],
    })

    assert fingerprints == {"good": ["1.png", "2.png"]}
    assert len(skipped) == 1
    assert skipped[0].asset_id == "broken"
    assert "corrupt" in skipped[0].reason


def test_invalid_concurrency():
    with pytest.raises(ValueError):
        FingerprintBatchProcessor(max_concurrency=0)


def test_empty_directory(tmp_path):
    result = DuplicatePipeline(show_progress=False).run(str(tmp_path))

    assert result.groups == {}
    assert result.skipped == []


def test_save_duplicates_format(tmp_path):
    groups = {"zeta": ["beta", "alpha"], "alpha_root": [], "émile": ["ümlaut"]}
    path = tmp_path / "out" / "duplicates.json"

    save_duplicates(groups, str(path))

    text = path.read_text(encoding="utf-8")
    assert text == json.dumps(groups, indent=2, ensure_ascii=False)
    assert '\n  "zeta": [\n    "beta",\n    "alpha"\n  ]' in text

    loaded = load_duplicates(str(path))
    assert list(loaded) == ["zeta", "alpha_root", "émile"]
    assert loaded["zeta"] == ["beta", "alpha"]
