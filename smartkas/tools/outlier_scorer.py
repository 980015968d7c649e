"""Isolation-forest outlier scoring for transaction batches

The ensemble is scikit-learn's ``IsolationForest``, fitted per call with an
explicit ``random_state`` so a given seed and input order always produce the
same scores. ``export_forest`` turns a fitted model into plain data: a list of
trees, each a flat list of ``SplitNode`` entries addressed by index (node 0 is
the root).
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple
import numpy as np
import pandas as pd
from sklearn.ensemble import IsolationForest
from smartkas.constants import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_MIN_TRANSACTIONS,
    DEFAULT_N_TREES,
    TransactionType
)
from smartkas.models import Transaction
from smartkas.utils.errors import ConfigurationError
from smartkas.utils.logging import get_logger
from smartkas.utils.metrics import transactions_scored, anomalies_flagged

logger = get_logger(__name__)

SUPPORTED_FEATURES = ("log_amount", "direction", "day_of_week")

LEAF = -1


class SplitNode(NamedTuple):
    """One node of an isolation tree; ``feature == LEAF`` marks a leaf"""
    feature: int
    threshold: float
    left: int
    right: int
    size: int


Tree = List[SplitNode]


@dataclass(frozen=True)
class Forest:
    trees: List[Tree]
    sample_size: int


def build_feature_matrix(transactions: Sequence[Transaction], features: Sequence[str]) -> np.ndarray:
    """
    Reduce transactions to a numeric matrix, one row per transaction.

    Features:
    - log_amount: log1p of the absolute amount
    - direction: +1 for income, -1 for expense
    - day_of_week: 0 (Monday) to 6
    """
    df = pd.DataFrame([
        {
            'amount': float(txn.amount),
            'type': TransactionType(txn.type).value,
            'date': txn.date
        }
        for txn in transactions
    ])

    columns = []
    for feature in features:
        if feature == 'log_amount':
            columns.append(np.log1p(df['amount'].abs().to_numpy()))
        elif feature == 'direction':
            columns.append(np.where(df['type'] == TransactionType.IN.value, 1.0, -1.0))
        elif feature == 'day_of_week':
            dates = pd.to_datetime(df['date'], utc=True)
            columns.append(dates.dt.dayofweek.to_numpy(dtype=float))

    return np.column_stack(columns).astype(float)


def fit_forest(X: np.ndarray, seed: int, n_trees: int = DEFAULT_N_TREES,
               max_samples: int = DEFAULT_MAX_SAMPLES) -> IsolationForest:
    """Fit ``n_trees`` isolation trees, each on a subsample of at most ``max_samples`` rows"""
    model = IsolationForest(
        n_estimators=n_trees,
        max_samples=min(max_samples, X.shape[0]),
        contamination="auto",
        random_state=seed
    )
    model.fit(X)
    return model


def export_forest(model: IsolationForest) -> Forest:
    """Copy a fitted model's trees out as ``SplitNode`` lists over the original feature columns"""
    trees = []
    for estimator, columns in zip(model.estimators_, model.estimators_features_):
        tree = estimator.tree_
        nodes = []
        for i in range(tree.node_count):
            if tree.children_left[i] == LEAF:
                nodes.append(SplitNode(LEAF, 0.0, LEAF, LEAF, int(tree.n_node_samples[i])))
            else:
                nodes.append(SplitNode(
                    int(columns[tree.feature[i]]),
                    float(tree.threshold[i]),
                    int(tree.children_left[i]),
                    int(tree.children_right[i]),
                    int(tree.n_node_samples[i])
                ))
        trees.append(nodes)
    return Forest(trees=trees, sample_size=int(model.max_samples_))


def score_samples(model: IsolationForest, X: np.ndarray) -> np.ndarray:
    """
    Anomaly score in [0, 1] per row.

    The classic isolation score 2^(-E[h]/c(psi)) sits at 0.5 for a point of
    typical path length; it is rescaled here so that typical points map to 0
    and points isolated at the root map to 1.
    """
    raw = -model.score_samples(X)
    return np.clip(2.0 * raw - 1.0, 0.0, 1.0)


class IsolationForestScorer:
    """Scores a batch of one business's recent transactions"""

    def __init__(
        self,
        n_trees: int = DEFAULT_N_TREES,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        min_transactions: int = DEFAULT_MIN_TRANSACTIONS,
        threshold: float = DEFAULT_ANOMALY_THRESHOLD,
        features: Sequence[str] = ("log_amount",)
    ):
        unknown = [f for f in features if f not in SUPPORTED_FEATURES]
        if unknown:
            raise ConfigurationError(f"Unsupported scoring features: {unknown}")
        if n_trees < 1 or max_samples < 2:
            raise ConfigurationError("n_trees must be >= 1 and max_samples >= 2")
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"Anomaly threshold must be within [0, 1], got {threshold}")

        # Amount is always part of the feature vector
        self.features = ["log_amount"] + [f for f in features if f != "log_amount"]
        self.n_trees = n_trees
        self.max_samples = max_samples
        self.min_transactions = min_transactions
        self.threshold = threshold

    def score(self, transactions: Sequence[Transaction], seed: int) -> List[float]:
        """
        Score every transaction, same order as the input.

        Batches smaller than ``min_transactions`` score 0 across the board.
        """
        if len(transactions) < self.min_transactions:
            logger.info(
                "Too few transactions to score",
                count=len(transactions),
                minimum=self.min_transactions
            )
            return [0.0] * len(transactions)

        X = build_feature_matrix(transactions, self.features)
        model = fit_forest(X, seed, n_trees=self.n_trees, max_samples=self.max_samples)
        scores = score_samples(model, X)

        transactions_scored.inc(len(transactions))
        return [float(s) for s in scores]

    def detect(self, transactions: Sequence[Transaction], seed: int) -> List[Tuple[Transaction, float]]:
        """Transactions scoring strictly above the threshold, with their scores"""
        if len(transactions) < self.min_transactions:
            return []

        scores = self.score(transactions, seed)
        flagged = [
            (txn, score)
            for txn, score in zip(transactions, scores)
            if score > self.threshold
        ]

        anomalies_flagged.inc(len(flagged))
        logger.info(
            f"Isolation forest flagged {len(flagged)} of {len(transactions)} transactions",
            threshold=self.threshold
        )
        return flagged
