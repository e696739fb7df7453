"""
Tests for size-constrained hierarchical clustering.

Covers the per-round building blocks (dendrogram, cut search, threshold) and
the full loop's guarantees: coverage, size bounds, waiver, termination.
"""

import numpy as np
import pandas as pd
import pytest

from busplan.size_clustering import (
    ClusteringResult,
    ClusteringStalledError,
    InvalidSizeBoundsError,
    RoundRecord,
    build_dendrogram,
    cluster_sizes,
    cut_curve,
    cut_labels,
    round_pool,
    run_round,
    search_cut,
    size_constrained_clusters,
    size_threshold,
    validate_size_bounds,
)


def group_sizes(result):
    return result.assignments.groupby(["round", "cluster"]).size()


def assert_plan_valid(result, n_points, max_size, min_size):
    """Coverage, max bound, and min-or-waiver-or-stall bound."""
    a = result.assignments
    assert len(a) == n_points
    assert sorted(a["point_index"]) == list(range(n_points))

    sizes = group_sizes(result)
    assert (sizes <= max_size).all()

    by_round = {r.round: r for r in result.rounds}
    for (rnd, _), size in sizes.items():
        record = by_round[rnd]
        assert size >= min_size or record.n_clusters < 3 or record.stalled

    assert result.n_rounds <= n_points


class TestValidateSizeBounds:
    """Test suite for size bound validation."""

    def test_accepts_valid_bounds(self):
        validate_size_bounds(59, 30)
        validate_size_bounds(np.int64(10), np.int64(1))

    @pytest.mark.parametrize("max_size,min_size", [(30, 30), (30, 59), (0, 0), (10, 0), (-5, -10)])
    def test_rejects_bad_bounds(self, max_size, min_size):
        with pytest.raises(InvalidSizeBoundsError):
            validate_size_bounds(max_size, min_size)

    @pytest.mark.parametrize("max_size,min_size", [(59.0, 30), (59, "30"), (True, 0)])
    def test_rejects_non_integers(self, max_size, min_size):
        with pytest.raises(InvalidSizeBoundsError):
            validate_size_bounds(max_size, min_size)

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            size_constrained_clusters(np.zeros((4, 2)), max_size=3, min_size=3)


class TestRoundBuildingBlocks:
    """Test suite for dendrogram, cut and threshold helpers."""

    def test_cut_labels_gives_exactly_k_clusters(self, three_blobs):
        Z = build_dendrogram(three_blobs)
        for k in (2, 3, 7, len(three_blobs)):
            labels = cut_labels(Z, k)
            assert len(labels) == len(three_blobs)
            assert set(labels) == set(range(1, k + 1))

    def test_cut_labels_splits_coincident_points(self):
        Z = build_dendrogram(np.zeros((6, 2)))
        assert len(set(cut_labels(Z, 6))) == 6

    def test_cluster_sizes(self):
        sizes = cluster_sizes(np.array([3, 1, 3, 2, 3, 1]))
        assert sizes.to_dict() == {1: 2, 2: 1, 3: 3}
        assert list(sizes.index) == [1, 2, 3]

    def test_search_cut_finds_smallest_fitting_k(self, three_blobs):
        Z = build_dendrogram(three_blobs)
        k, labels = search_cut(Z, len(three_blobs), max_size=59)
        assert k == 3
        assert sorted(cluster_sizes(labels)) == [5, 20, 50]

    def test_search_cut_starts_at_two(self, three_blobs):
        Z = build_dendrogram(three_blobs)
        k, _ = search_cut(Z, len(three_blobs), max_size=1000)
        assert k == 2

    def test_search_cut_can_reach_singletons(self, three_blobs):
        Z = build_dendrogram(three_blobs)
        k, labels = search_cut(Z, len(three_blobs), max_size=1)
        assert k == len(three_blobs)
        assert cluster_sizes(labels).max() == 1

    def test_size_threshold_waived_below_three_clusters(self):
        assert size_threshold(pd.Series({1: 1}), 30) == 0
        assert size_threshold(pd.Series({1: 1, 2: 40}), 30) == 0
        assert size_threshold(pd.Series({1: 1, 2: 40, 3: 2}), 30) == 30

    def test_cut_curve(self, three_blobs):
        Z = build_dendrogram(three_blobs)
        curve = cut_curve(Z, len(three_blobs), k_max=6)
        assert list(curve.columns) == ["k", "largest", "smallest"]
        assert list(curve["k"]) == [2, 3, 4, 5, 6]
        assert curve.loc[curve["k"] == 2, "largest"].item() == 70
        assert curve["largest"].is_monotonic_decreasing

    def test_unsupported_linkage_method(self, three_blobs):
        with pytest.raises(ValueError, match="Unsupported linkage"):
            build_dendrogram(three_blobs, method="centroid")

    def test_run_round_single_point(self):
        labels, accepted, record = run_round(np.array([[1.0, 2.0]]), 1, 59, 30)
        assert list(labels) == [1]
        assert accepted.all()
        assert record.k == 1
        assert record.waived

    def test_run_round_defers_small_clusters(self, three_blobs):
        labels, accepted, record = run_round(three_blobs, 1, max_size=59, min_size=10)
        assert record.k == 3
        assert record.threshold == 10
        assert not record.waived
        assert accepted.sum() == 70
        assert record.n_deferred == 5
        assert len(record.deferred_labels) == 1
        assert record.sizes[record.deferred_labels[0]] == 5


class TestSizeConstrainedClusters:
    """Test suite for the full clustering loop."""

    def test_empty_input(self):
        result = size_constrained_clusters(np.empty((0, 2)))
        assert result.n_rounds == 0
        assert result.n_groups == 0
        assert result.assignments.empty
        assert list(result.assignments.columns) == ["point_index", "x0", "x1", "cluster", "round", "group"]

    def test_empty_list_input(self):
        result = size_constrained_clusters([])
        assert result.n_rounds == 0

    def test_single_point(self):
        result = size_constrained_clusters([[0.5, -0.5]], max_size=59, min_size=30)
        assert result.n_rounds == 1
        assert result.n_groups == 1
        row = result.assignments.iloc[0]
        assert row["cluster"] == 1
        assert row["round"] == 1
        assert result.rounds[0].waived

    def test_two_points_accepted_together(self):
        result = size_constrained_clusters([[0.0, 0.0], [1.0, 1.0]], max_size=59, min_size=30)
        assert result.n_rounds == 1
        assert result.n_groups == 2
        assert result.rounds[0].waived

    def test_small_input_under_max_is_one_round(self, three_blobs):
        points = three_blobs[:10]
        result = size_constrained_clusters(points, max_size=59, min_size=5)
        assert result.n_rounds == 1
        assert result.rounds[0].k == 2
        assert result.n_groups == 2

    def test_leftovers_are_reclustered(self, three_blobs):
        result = size_constrained_clusters(three_blobs, max_size=59, min_size=10)
        assert result.n_rounds == 2

        first, second = result.rounds
        assert sorted(first.sizes[label] for label in first.accepted_labels) == [20, 50]
        assert second.n_points == 5
        assert second.waived
        assert second.n_accepted == 5

        a = result.assignments
        assert set(a.loc[a["round"] == 2, "point_index"]) == set(range(70, 75))
        assert result.n_groups == 4
        assert_plan_valid(result, len(three_blobs), 59, 10)

    def test_group_ids_unique_per_round_and_cluster(self, three_blobs):
        result = size_constrained_clusters(three_blobs, max_size=59, min_size=10)
        a = result.assignments
        pairs = a.groupby("group")[["round", "cluster"]].nunique()
        assert (pairs == 1).all().all()
        assert sorted(a["group"].unique()) == list(range(1, result.n_groups + 1))

    def test_coordinates_carried_through(self, three_blobs):
        result = size_constrained_clusters(three_blobs, max_size=59, min_size=10)
        a = result.assignments.sort_values("point_index")
        np.testing.assert_allclose(a[["x0", "x1"]].to_numpy(), three_blobs)

    def test_hundred_points(self, hundred_points):
        result = size_constrained_clusters(hundred_points, max_size=59, min_size=30)
        assert result.n_groups >= 2
        assert_plan_valid(result, 100, 59, 30)

    @pytest.mark.parametrize("max_size,min_size", [(59, 30), (20, 10), (8, 2), (3, 1)])
    def test_bounds_hold_for_various_sizes(self, hundred_points, max_size, min_size):
        result = size_constrained_clusters(hundred_points, max_size=max_size, min_size=min_size)
        assert_plan_valid(result, 100, max_size, min_size)

    def test_sixty_one_uniform_points_single_waived_round(self):
        points = np.column_stack([np.linspace(0.0, 6.0, 61), np.zeros(61)])
        result = size_constrained_clusters(points, max_size=59, min_size=30)
        first = result.rounds[0]
        assert first.k == 2
        assert first.waived
        assert first.n_deferred == 0
        assert result.n_rounds == 1
        assert (group_sizes(result) <= 59).all()
        assert_plan_valid(result, 61, 59, 30)

    def test_coincident_points_terminate(self):
        points = np.zeros((70, 2))
        result = size_constrained_clusters(points, max_size=59, min_size=30)
        assert_plan_valid(result, 70, 59, 30)

    def test_deterministic(self, hundred_points):
        first = size_constrained_clusters(hundred_points, max_size=20, min_size=10)
        second = size_constrained_clusters(hundred_points, max_size=20, min_size=10)
        pd.testing.assert_frame_equal(first.assignments, second.assignments)
        assert first.rounds == second.rounds

    def test_input_is_not_modified(self, hundred_points):
        before = hundred_points.copy()
        size_constrained_clusters(hundred_points, max_size=20, min_size=10)
        np.testing.assert_array_equal(hundred_points, before)

    def test_non_finite_points_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            size_constrained_clusters([[0.0, 0.0], [np.nan, 1.0], [2.0, 2.0]])

    def test_one_dimensional_points_rejected(self):
        with pytest.raises(ValueError, match="2-D"):
            size_constrained_clusters([1.0, 2.0, 3.0])

    def test_unknown_stall_policy(self, three_blobs):
        with pytest.raises(ValueError, match="on_stall"):
            size_constrained_clusters(three_blobs, on_stall="ignore")


class TestStalledRounds:
    """Test suite for rounds where no cluster reaches the minimum."""

    def test_accepts_largest_cluster(self, three_triplets):
        result = size_constrained_clusters(three_triplets, max_size=5, min_size=4)
        first = result.rounds[0]
        assert first.k == 3
        assert first.stalled
        assert not first.waived
        assert first.accepted_labels == [min(first.sizes)]
        assert first.n_accepted == 3

        assert result.n_rounds == 2
        assert result.rounds[1].waived
        assert_plan_valid(result, 9, 5, 4)

    def test_stall_logs_warning(self, three_triplets, caplog):
        with caplog.at_level("WARNING", logger="busplan.size_clustering"):
            size_constrained_clusters(three_triplets, max_size=5, min_size=4)
        assert "accepting largest cluster" in caplog.text

    def test_raise_policy(self, three_triplets):
        with pytest.raises(ClusteringStalledError):
            size_constrained_clusters(three_triplets, max_size=5, min_size=4, on_stall="raise")


class TestClusteringResult:
    """Test suite for the result container."""

    def test_rounds_frame(self, three_blobs):
        result = size_constrained_clusters(three_blobs, max_size=59, min_size=10)
        frame = result.rounds_frame()
        assert list(frame["round"]) == [1, 2]
        assert list(frame["points"]) == [75, 5]
        assert list(frame["accepted"]) == [70, 5]
        assert list(frame["deferred"]) == [5, 0]
        assert list(frame["waived"]) == [False, True]

    def test_empty_rounds_frame(self):
        frame = ClusteringResult(assignments=pd.DataFrame()).rounds_frame()
        assert frame.empty
        assert "threshold" in frame.columns

    def test_round_record_counts(self):
        record = RoundRecord(
            round=1, n_points=10, k=3, threshold=4, waived=False, stalled=False,
            sizes={1: 5, 2: 3, 3: 2}, accepted_labels=[1], deferred_labels=[2, 3],
        )
        assert record.n_clusters == 3
        assert record.n_accepted == 5
        assert record.n_deferred == 5


class TestRoundPool:
    """Test suite for recovering the points a round started with."""

    def test_pool_sorted_by_point_index(self, three_blobs):
        result = size_constrained_clusters(three_blobs, max_size=59, min_size=10)
        assert list(round_pool(result, 1)["point_index"]) == list(range(75))
        assert list(round_pool(result, 2)["point_index"]) == list(range(70, 75))

    def test_rebuilt_rounds_match_record_with_ties(self):
        points = np.vstack([np.zeros((40, 2)), np.ones((35, 2)), np.full((8, 2), 5.0)])
        result = size_constrained_clusters(points, max_size=30, min_size=10)
        for record in result.rounds:
            pool = round_pool(result, record.round)
            assert len(pool) == record.n_points
            if record.n_points < 2:
                continue
            Z = build_dendrogram(pool[["x0", "x1"]].to_numpy())
            k, labels = search_cut(Z, record.n_points, max_size=30)
            assert k == record.k
            assert cluster_sizes(labels).to_dict() == record.sizes
