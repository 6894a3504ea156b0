# tests/test_duplicate_detection.py

import itertools

import numpy as np
import pytest

from config import DuplicateDetectionConfig
from core.clustering import cluster, cluster_transitive
from core.comparison import count_matches, hamming_distance, is_duplicate, match_ratio
from core.exceptions import EmptySetError, LengthMismatchError
from core.fingerprint import fingerprint_from_bits

ONES = fingerprint_from_bits("1" * 64)
ZEROS = fingerprint_from_bits("0" * 64)


def bits_with_prefix(n_ones: int):
    """Fingerprint whose first n_ones bits are set"""
    return fingerprint_from_bits("1" * n_ones + "0" * (64 - n_ones))


def random_sets(seed: int, n_assets: int = 8):
    """Random fingerprint sets built around a few shared bases"""
    rng = np.random.default_rng(seed)
    bases = [rng.integers(0, 2, 64) for _ in range(3)]
    assets = {}
    for idx in range(n_assets):
        frames = []
        for _ in range(rng.integers(1, 5)):
            bits = bases[rng.integers(0, len(bases))].copy()
            flips = rng.choice(64, size=rng.integers(0, 8), replace=False)
            bits[flips] ^= 1
            frames.append(fingerprint_from_bits(''.join(str(b) for b in bits)))
        assets[f"asset_{idx:02d}"] = frames
    return assets


@pytest.fixture
def config():
    return DuplicateDetectionConfig(hash_threshold=5, match_ratio=0.5)


# Comparator

def test_hamming_distance():
    assert hamming_distance(ONES, ONES) == 0
    assert hamming_distance(ONES, ZEROS) == 64
    assert hamming_distance(ZEROS, bits_with_prefix(5)) == 5


def test_hamming_distance_length_mismatch():
    short = fingerprint_from_bits("1" * 16)

    with pytest.raises(LengthMismatchError) as exc_info:
        hamming_distance(ONES, short)

    assert exc_info.value.length_a == 64
    assert exc_info.value.length_b == 16


def test_length_mismatch_propagates_from_comparator(config):
    with pytest.raises(LengthMismatchError):
        is_duplicate([ONES], [fingerprint_from_bits("1" * 36)], config)


def test_length_mismatch_propagates_from_cluster(config):
    assets = {"A": [ONES], "B": [fingerprint_from_bits("1" * 36)]}

    with pytest.raises(LengthMismatchError):
        cluster(assets, config)
    with pytest.raises(LengthMismatchError):
        cluster_transitive(assets, config)


@pytest.mark.parametrize("set_a, set_b", [([], [ONES]), ([ONES], []), ([], [])])
def test_empty_set_raises(config, set_a, set_b):
    with pytest.raises(EmptySetError):
        is_duplicate(set_a, set_b, config)


def test_all_pairs_are_counted():
    """Repeated frames each count against the other set"""
    assert count_matches([ONES, ONES, ONES], [ONES], 5) == 3
    assert match_ratio([ONES, ONES, ONES], [ONES], 5) == 3.0


def test_ratio_uses_smaller_set(config):
    far = bits_with_prefix(40)
    set_a = [ZEROS, far]
    set_b = [ZEROS, ONES, ONES, ONES]

    assert match_ratio(set_a, set_b, 5) == 0.5
    assert is_duplicate(set_a, set_b, config) is True
    assert is_duplicate(set_a, set_b, DuplicateDetectionConfig(match_ratio=0.6)) is False


def test_completely_different_sets_are_not_duplicates(config):
    assert is_duplicate([ONES], [ZEROS], config) is False


@pytest.mark.parametrize("seed", range(5))
def test_comparator_is_symmetric(seed):
    assets = random_sets(seed)
    for threshold, ratio in [(0, 0.5), (5, 0.5), (10, 0.25), (64, 1.0)]:
        cfg = DuplicateDetectionConfig(hash_threshold=threshold, match_ratio=ratio)
        for a, b in itertools.combinations(assets.values(), 2):
            assert is_duplicate(a, b, cfg) == is_duplicate(b, a, cfg)


@pytest.mark.parametrize("seed", range(5))
def test_threshold_monotonicity(seed):
    assets = random_sets(seed)
    for a, b in itertools.combinations(assets.values(), 2):
        was_duplicate = False
        for threshold in range(65):
            cfg = DuplicateDetectionConfig(hash_threshold=threshold, match_ratio=0.5)
            now_duplicate = is_duplicate(a, b, cfg)
            assert not (was_duplicate and not now_duplicate)
            was_duplicate = now_duplicate


@pytest.mark.parametrize("seed", range(5))
def test_self_similarity(seed):
    strict = DuplicateDetectionConfig(hash_threshold=0, match_ratio=1.0)
    for frames in random_sets(seed).values():
        assert is_duplicate(frames, frames, strict) is True


# Resolver

def test_identical_assets_form_one_group(config):
    assets = {"A": [ONES], "B": [ONES], "C": [ONES]}

    assert cluster(assets, config) == {"A": ["B", "C"]}


def test_distinct_assets_are_their_own_roots(config):
    assets = {"A": [ONES], "B": [ZEROS]}

    assert cluster(assets, config) == {"A": [], "B": []}


def test_empty_frame_set_raises(config):
    with pytest.raises(EmptySetError) as exc_info:
        cluster({"A": [ONES], "B": []}, config)

    assert exc_info.value.asset_id == "B"


def test_single_empty_asset_raises(config):
    with pytest.raises(EmptySetError):
        cluster({"A": []}, config)


def test_empty_input(config):
    assert cluster({}, config) == {}
    assert cluster_transitive({}, config) == {}


def test_roots_follow_lexicographic_order(config):
    assets = {"c": [ONES], "a": [ZEROS], "b": [ONES], "d": [ZEROS]}

    result = cluster(assets, config)

    assert result == {"a": ["d"], "b": ["c"]}
    assert list(result) == ["a", "b"]


def test_duplicates_listed_in_discovery_order(config):
    assets = {"z": [ONES], "m": [ONES], "a": [ONES], "q": [ONES]}

    assert cluster(assets, config) == {"a": ["m", "q", "z"]}


def test_chain_is_split_by_greedy_resolver(config):
    """A~B and B~C but not A~C: B joins A and C stays on its own"""
    assets = {
        "A": [ZEROS],
        "B": [bits_with_prefix(4)],
        "C": [bits_with_prefix(8)],
    }

    assert is_duplicate(assets["A"], assets["B"], config)
    assert is_duplicate(assets["B"], assets["C"], config)
    assert not is_duplicate(assets["A"], assets["C"], config)

    assert cluster(assets, config) == {"A": ["B"], "C": []}


def test_chain_is_merged_by_transitive_resolver(config):
    assets = {
        "A": [ZEROS],
        "B": [bits_with_prefix(4)],
        "C": [bits_with_prefix(8)],
        "D": [ONES],
    }

    assert cluster_transitive(assets, config) == {"A": ["B", "C"], "D": []}


def test_claimed_asset_is_not_reclaimed(config):
    """B is claimed by A, so it cannot claim C even though B~C"""
    assets = {
        "A": [bits_with_prefix(4)],
        "B": [bits_with_prefix(8)],
        "C": [bits_with_prefix(12)],
    }

    assert cluster(assets, config) == {"A": ["B"], "C": []}


@pytest.mark.parametrize("resolver", [cluster, cluster_transitive])
@pytest.mark.parametrize("seed", range(10))
def test_every_asset_appears_exactly_once(resolver, seed):
    assets = random_sets(seed, n_assets=12)
    cfg = DuplicateDetectionConfig(hash_threshold=6, match_ratio=0.5)

    result = resolver(assets, cfg)

    members = list(result) + [dup for dups in result.values() for dup in dups]
    assert sorted(members) == sorted(assets)
    assert not set(result) & {dup for dups in result.values() for dup in dups}


@pytest.mark.parametrize("seed", range(5))
def test_cluster_is_reproducible(seed):
    assets = random_sets(seed, n_assets=10)
    shuffled = dict(reversed(list(assets.items())))
    cfg = DuplicateDetectionConfig()

    assert cluster(assets, cfg) == cluster(shuffled, cfg)
    assert list(cluster(assets, cfg)) == list(cluster(shuffled, cfg))
