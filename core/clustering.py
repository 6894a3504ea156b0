# core/clustering.py

import logging
from typing import Dict, List, Sequence

import imagehash

from core.comparison import is_duplicate
from core.exceptions import EmptySetError

logger = logging.getLogger(__name__)

FingerprintSets = Dict[str, Sequence[imagehash.ImageHash]]


def _check_non_empty(assets: FingerprintSets):
    for asset_id in sorted(assets):
        if len(assets[asset_id]) == 0:
            raise EmptySetError(asset_id)


def cluster(assets: FingerprintSets, config) -> Dict[str, List[str]]:
    """
    Group assets into duplicate clusters

    Assets are visited in lexicographic order of their IDs. Each asset that
    is still unresolved becomes a cluster root and claims every later
    unresolved asset it is a duplicate of. A claimed asset is removed from
    the working list, so it is never a root and never claimed twice.

    Similarity is not transitive (A~B and B~C do not imply A~C), so which
    root an asset lands under can depend on the enumeration order. This
    greedy grouping is the intended behavior; use cluster_transitive for the
    transitive closure.

    Returns:
        Dictionary mapping every root to its duplicates in discovery order.
        Every input ID appears exactly once across keys and values.
    """
    _check_non_empty(assets)

    unresolved = sorted(assets)
    duplicates = {}

    i = 0
    while i < len(unresolved):
        root = unresolved[i]
        group = []

        j = i + 1
        while j < len(unresolved):
            other = unresolved[j]
            if is_duplicate(assets[root], assets[other], config):
                logger.debug("%s is a duplicate of %s", other, root)
                group.append(other)
                del unresolved[j]
            else:
                j += 1

        duplicates[root] = group
        i += 1

    return duplicates


def cluster_transitive(assets: FingerprintSets, config) -> Dict[str, List[str]]:
    """
    Group assets by the transitive closure of the duplicate relation

    Compares every pair and merges connected assets with union-find. Unlike
    cluster(), A~B and B~C put A, B and C in one group even when A and C do
    not match. The root of a group is its smallest ID; duplicates are sorted.
    """
    _check_non_empty(assets)

    ids = sorted(assets)
    parent = {asset_id: asset_id for asset_id in ids}

    def find(x):
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for i, a in enumerate(ids):
        for b in ids[i + 1:]:
            if is_duplicate(assets[a], assets[b], config):
                root_a, root_b = find(a), find(b)
                if root_a != root_b:
                    # Keep the lexicographically smallest ID as the root
                    if root_b < root_a:
                        root_a, root_b = root_b, root_a
                    parent[root_b] = root_a

    duplicates = {}
    for asset_id in ids:
        root = find(asset_id)
        if root == asset_id:
            duplicates.setdefault(root, [])
        else:
            duplicates.setdefault(root, []).append(asset_id)

    return duplicates
