# core/comparison.py

from typing import Sequence

import imagehash

from core.exceptions import EmptySetError, LengthMismatchError


def hamming_distance(a: imagehash.ImageHash, b: imagehash.ImageHash) -> int:
    """Number of differing bit positions between two fingerprints"""
    if a.hash.size != b.hash.size:
        raise LengthMismatchError(a.hash.size, b.hash.size)
    return int(a - b)


def count_matches(set_a: Sequence[imagehash.ImageHash],
                  set_b: Sequence[imagehash.ImageHash],
                  hash_threshold: int) -> int:
    """
    Count matching pairs over the full cross product of two sets

    Every (a, b) pair within the distance threshold counts, so an asset with
    many near-identical frames contributes several matches per frame.
    """
    matches = 0
    for a in set_a:
        for b in set_b:
            if hamming_distance(a, b) <= hash_threshold:
                matches += 1
    return matches


def match_ratio(set_a: Sequence[imagehash.ImageHash],
                set_b: Sequence[imagehash.ImageHash],
                hash_threshold: int) -> float:
    """Matching pairs relative to the size of the smaller set"""
    smaller = min(len(set_a), len(set_b))
    if smaller == 0:
        raise EmptySetError()
    return count_matches(set_a, set_b, hash_threshold) / smaller


def is_duplicate(set_a: Sequence[imagehash.ImageHash],
                 set_b: Sequence[imagehash.ImageHash],
                 config) -> bool:
    """
    Decide whether two assets are duplicates of each other

    Args:
        set_a, set_b: Fingerprints of each asset's frames
        config: DuplicateDetectionConfig carrying hash_threshold and
                match_ratio

    The result is symmetric in set_a and set_b.
    """
    ratio = match_ratio(set_a, set_b, config.hash_threshold)
    return ratio >= config.match_ratio
