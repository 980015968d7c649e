"""Tests for isolation-forest scoring"""

import numpy as np
import pytest
from conftest import make_transactions
from smartkas.constants import TransactionType
from smartkas.tools.outlier_scorer import (
    LEAF,
    IsolationForestScorer,
    build_feature_matrix,
    export_forest,
    fit_forest,
    score_samples
)
from smartkas.utils.errors import ConfigurationError


def test_too_few_transactions_score_zero():
    """Batches under the minimum are never flagged"""
    scorer = IsolationForestScorer(min_transactions=5)
    transactions = make_transactions("biz", [50000, 50000, 50000, 5000000])

    assert scorer.score(transactions, seed=42) == [0.0, 0.0, 0.0, 0.0]
    assert scorer.detect(transactions, seed=42) == []


def test_scores_are_deterministic_for_a_seed():
    """Same seed and input order give identical scores"""
    scorer = IsolationForestScorer()
    transactions = make_transactions("biz", [12000, 15000, 9000, 30000, 11000, 14000, 250000, 13000])

    first = scorer.score(transactions, seed=7)
    second = scorer.score(transactions, seed=7)

    assert first == second
    assert len(first) == len(transactions)
    assert all(0.0 <= s <= 1.0 for s in first)


def test_single_large_outlier_is_flagged():
    """Nine identical payments and one 100x payment: only the big one is flagged"""
    scorer = IsolationForestScorer(threshold=0.5)
    transactions = make_transactions("biz", [50000] * 9 + [5000000])

    scores = scorer.score(transactions, seed=42)
    flagged = scorer.detect(transactions, seed=42)

    assert scores[-1] > 0.6
    assert all(s == 0.0 for s in scores[:-1])
    assert [txn.id for txn, _ in flagged] == [transactions[-1].id]


def test_outlier_among_near_identical_cluster():
    """Small variations around a typical amount stay below the threshold"""
    scorer = IsolationForestScorer(threshold=0.5)
    transactions = make_transactions("biz", [50000, 51000, 49000, 50500, 49500, 50200, 5000000])

    scores = scorer.score(transactions, seed=42)
    flagged = scorer.detect(transactions, seed=42)

    assert int(np.argmax(scores)) == 6
    assert [txn.id for txn, _ in flagged] == [transactions[6].id]


def test_identical_amounts_are_not_flagged():
    """A batch with no variation has nothing to isolate"""
    scorer = IsolationForestScorer()
    transactions = make_transactions("biz", [20000] * 8)

    assert scorer.detect(transactions, seed=42) == []


def test_feature_matrix_columns():
    """Optional features add direction and weekday columns"""
    transactions = make_transactions("biz", [100, 200], txn_type=TransactionType.IN)
    X = build_feature_matrix(transactions, ["log_amount", "direction", "day_of_week"])

    assert X.shape == (2, 3)
    assert X[0, 0] == pytest.approx(np.log1p(100))
    assert list(X[:, 1]) == [1.0, 1.0]
    assert 0 <= X[0, 2] <= 6


def test_forest_sample_size_capped_by_batch():
    """Each tree is grown on at most max_samples points"""
    X = np.log1p(np.array([[10.0], [20.0], [30.0], [40.0], [5000.0]]))
    model = fit_forest(X, seed=1, n_trees=10, max_samples=256)

    assert model.max_samples_ == 5
    assert len(model.estimators_) == 10
    assert score_samples(model, X).shape == (5,)


def test_exported_forest_is_plain_split_nodes():
    """Fitted trees come out as flat node lists rooted at the subsample"""
    X = np.log1p(np.array([[10.0], [20.0], [30.0], [40.0], [5000.0]]))
    forest = export_forest(fit_forest(X, seed=1, n_trees=10, max_samples=256))

    assert forest.sample_size == 5
    assert len(forest.trees) == 10
    for tree in forest.trees:
        assert tree[0].size == 5
        assert tree[0].feature == 0
        for node in tree:
            if node.feature == LEAF:
                assert node.left == node.right == LEAF
            else:
                assert tree[node.left].size + tree[node.right].size == node.size


def test_invalid_scorer_configuration():
    """Unknown features and out-of-range thresholds are rejected"""
    with pytest.raises(ConfigurationError):
        IsolationForestScorer(features=("merchant_entropy",))

    with pytest.raises(ConfigurationError):
        IsolationForestScorer(threshold=1.5)
