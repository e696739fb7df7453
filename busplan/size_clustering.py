"""Size-constrained hierarchical clustering.

Hierarchical clustering gives a tree, not a partition with a size cap. To get
groups that fit on a bus we work in rounds:

1. Build a dendrogram over the points that are still unassigned.
2. Cut it into k = 2, 3, ... clusters until the largest cluster fits under
   ``max_size``.
3. Keep every cluster with at least ``min_size`` members. If the cut produced
   fewer than 3 clusters the floor is dropped and every cluster is kept.
4. Everything else goes back into the pool and is re-clustered from scratch
   in the next round.

The loop stops when nothing is left. The dendrogram never outlives its round.
"""
import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import cut_tree, linkage
from scipy.spatial.distance import pdist

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("complete", "average", "single", "weighted", "ward")
STALL_POLICIES = ("accept_largest", "raise")

# Fewer distinct clusters than this at the chosen cut waives the size floor
WAIVER_CLUSTER_COUNT = 3


class InvalidSizeBoundsError(ValueError):
    """Raised when max/min cluster sizes are not positive integers with min < max."""


class ClusteringStalledError(RuntimeError):
    """Raised when a round accepts no cluster and the stall policy is ``"raise"``."""


@dataclass
class RoundRecord:
    """What happened in one clustering round."""
    round: int
    n_points: int
    k: int
    threshold: int
    waived: bool
    stalled: bool
    sizes: dict
    accepted_labels: list
    deferred_labels: list

    @property
    def n_clusters(self):
        return len(self.sizes)

    @property
    def n_accepted(self):
        return sum(self.sizes[label] for label in self.accepted_labels)

    @property
    def n_deferred(self):
        return self.n_points - self.n_accepted


@dataclass
class ClusteringResult:
    """Finalized assignments plus the per-round trace that produced them."""
    assignments: pd.DataFrame
    rounds: list = field(default_factory=list)

    @property
    def n_rounds(self):
        return len(self.rounds)

    @property
    def n_groups(self):
        if self.assignments.empty:
            return 0
        return int(self.assignments["group"].nunique())

    def rounds_frame(self):
        """Return the round trace as a DataFrame, one row per round."""
        return pd.DataFrame([
            {
                "round": r.round,
                "points": r.n_points,
                "k": r.k,
                "clusters": r.n_clusters,
                "threshold": r.threshold,
                "waived": r.waived,
                "stalled": r.stalled,
                "accepted": r.n_accepted,
                "deferred": r.n_deferred,
            }
            for r in self.rounds
        ], columns=["round", "points", "k", "clusters", "threshold",
                    "waived", "stalled", "accepted", "deferred"])


def _is_int(value):
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def validate_size_bounds(max_size, min_size):
    """Fail fast on size bounds the clustering loop cannot honour."""
    if not (_is_int(max_size) and _is_int(min_size)):
        raise InvalidSizeBoundsError(
            f"Cluster sizes must be integers, got max_size={max_size!r}, min_size={min_size!r}"
        )
    if max_size < 1 or min_size < 1:
        raise InvalidSizeBoundsError(
            f"Cluster sizes must be positive, got max_size={max_size}, min_size={min_size}"
        )
    if min_size >= max_size:
        raise InvalidSizeBoundsError(
            f"min_size ({min_size}) must be smaller than max_size ({max_size})"
        )


def build_dendrogram(points, method="complete", metric="euclidean"):
    """Agglomerative linkage matrix over ``points`` (needs at least 2 rows)."""
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported linkage method {method!r}; choose from {SUPPORTED_METHODS}")
    return linkage(pdist(points, metric=metric), method=method)


def cut_labels(Z, k):
    """Cut a dendrogram into exactly ``k`` clusters, labelled 1..k.

    Ties in merge height are broken by merge order, so coincident points
    still split apart once ``k`` is large enough.
    """
    return cut_tree(Z, n_clusters=k).ravel() + 1


def cluster_sizes(labels):
    """Cluster Size Table: label -> member count, sorted by label."""
    return pd.Series(labels).value_counts().sort_index()


def search_cut(Z, n_points, max_size):
    """Find the smallest k >= 2 whose largest cluster has at most ``max_size`` points.

    The search is linear and bounded by ``n_points``: at k == n_points every
    cluster is a singleton.
    """
    for k in range(2, n_points + 1):
        labels = cut_labels(Z, k)
        if cluster_sizes(labels).max() <= max_size:
            return k, labels
    raise RuntimeError(f"No cut of {n_points} points fits max_size={max_size}")


def cut_curve(Z, n_points, k_max):
    """Largest and smallest cluster size for every k in 2..k_max."""
    rows = []
    for k in range(2, min(k_max, n_points) + 1):
        sizes = cluster_sizes(cut_labels(Z, k))
        rows.append({"k": k, "largest": int(sizes.max()), "smallest": int(sizes.min())})
    return pd.DataFrame(rows, columns=["k", "largest", "smallest"])


def size_threshold(sizes, min_size):
    """Minimum accepted cluster size for a round.

    The floor is only enforced when the cut has at least three clusters.
    With one or two clusters every cluster is accepted, even a singleton.
    """
    if len(sizes) < WAIVER_CLUSTER_COUNT:
        return 0
    return min_size


def run_round(points, round_number, max_size, min_size, method="complete",
              on_stall="accept_largest"):
    """Run one clustering round over the remaining ``points``.

    Returns ``(labels, accepted_mask, record)`` where ``accepted_mask`` marks
    the points that are finalized this round.
    """
    n_points = len(points)
    if n_points == 1:
        k, labels = 1, np.array([1])
    else:
        Z = build_dendrogram(points, method=method)
        k, labels = search_cut(Z, n_points, max_size)

    sizes = cluster_sizes(labels)
    threshold = size_threshold(sizes, min_size)
    accepted = sizes[sizes >= threshold].index

    stalled = False
    if accepted.empty:
        if on_stall == "raise":
            raise ClusteringStalledError(
                f"Round {round_number}: none of {len(sizes)} clusters reached "
                f"min_size={min_size} (largest {sizes.max()})"
            )
        largest = sizes.idxmax()
        logger.warning(
            f"Round {round_number}: no cluster reached min_size={min_size}, "
            f"accepting largest cluster {largest} ({sizes[largest]} points)"
        )
        accepted = sizes[sizes.index == largest].index
        stalled = True

    accepted_mask = np.isin(labels, accepted)
    record = RoundRecord(
        round=round_number,
        n_points=n_points,
        k=k,
        threshold=threshold,
        waived=threshold == 0,
        stalled=stalled,
        sizes={int(label): int(count) for label, count in sizes.items()},
        accepted_labels=[int(label) for label in accepted],
        deferred_labels=[int(label) for label in sizes.index if label not in accepted],
    )
    logger.debug(
        f"Round {round_number}: {n_points} points, k={k}, threshold={threshold}, "
        f"accepted {record.n_accepted}, deferred {record.n_deferred}"
    )
    return labels, accepted_mask, record


def round_pool(result, round_number):
    """Rows still unassigned when ``round_number`` started.

    Sorted by ``point_index``, the order the round clustered them in, so a
    rebuilt dendrogram breaks ties the same way.
    """
    a = result.assignments
    return a[a["round"] >= round_number].sort_values("point_index", kind="stable")


def _coord_columns(n_dims):
    return [f"x{i}" for i in range(n_dims)]


def _round_rows(points, indices, labels, round_number):
    frame = pd.DataFrame(points[indices], columns=_coord_columns(points.shape[1]))
    frame.insert(0, "point_index", indices)
    frame["cluster"] = labels
    frame["round"] = round_number
    return frame


def size_constrained_clusters(points, max_size=59, min_size=30, method="complete",
                              on_stall="accept_largest"):
    """Partition ``points`` into groups of at most ``max_size`` members.

    Parameters
    ----------
    points : array-like, shape (n, d)
        Coordinates, usually standardized latitude/longitude.
    max_size : int
        Hard upper bound on a group's size.
    min_size : int
        Preferred lower bound; smaller clusters are re-clustered in a later
        round unless the size floor is waived (fewer than 3 clusters at the
        chosen cut).
    method : str
        Linkage rule for the dendrogram. Distances are Euclidean.
    on_stall : {"accept_largest", "raise"}
        What to do when a round has 3+ clusters and none reaches
        ``min_size``. Without intervention such a round would repeat forever.

    Returns
    -------
    ClusteringResult
        ``assignments`` has one row per input point, in acceptance order, with
        ``point_index``, coordinates ``x0..``, ``cluster``, ``round`` and a
        run-wide ``group`` id for each (round, cluster) pair.
    """
    validate_size_bounds(max_size, min_size)
    if on_stall not in STALL_POLICIES:
        raise ValueError(f"on_stall must be one of {STALL_POLICIES}, got {on_stall!r}")

    points = np.asarray(points, dtype=float)
    if points.ndim == 1 and points.size == 0:
        points = points.reshape(0, 2)
    if points.ndim != 2:
        raise ValueError(f"Expected a 2-D array of points, got shape {points.shape}")
    if not np.isfinite(points).all():
        raise ValueError("Points must be finite; drop or impute missing coordinates first")

    remaining = np.arange(len(points))
    frames = []
    rounds = []
    round_number = 0
    while remaining.size:
        round_number += 1
        labels, accepted, record = run_round(
            points[remaining], round_number, max_size, min_size,
            method=method, on_stall=on_stall,
        )
        frames.append(_round_rows(points, remaining[accepted], labels[accepted], round_number))
        rounds.append(record)
        remaining = remaining[~accepted]

    if frames:
        assignments = pd.concat(frames, ignore_index=True)
    else:
        assignments = pd.DataFrame(
            columns=["point_index"] + _coord_columns(points.shape[1]) + ["cluster", "round"]
        )
    assignments["group"] = assignments.groupby(["round", "cluster"], sort=False).ngroup() + 1

    result = ClusteringResult(assignments=assignments, rounds=rounds)
    logger.info(
        f"Clustered {len(points)} points into {result.n_groups} groups "
        f"over {result.n_rounds} rounds (max_size={max_size}, min_size={min_size})"
    )
    return result
