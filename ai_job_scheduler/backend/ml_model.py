from __future__ import annotations

from dataclasses import dataclass
from typing import List, Dict, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from .core import ProcessRecord, InvalidInputError
from .utils import round_half_up

logger = logging.getLogger(__name__)


FEATURE_NAMES = [
    "arrival_time",
    "priority",
    "memory_required",
    "io_operations",
]

NUM_TREES = 10
MAX_DEPTH = 5
MIN_SAMPLES_SPLIT = 3
RETRAIN_INTERVAL = 20
SYNTHETIC_SAMPLES = 100
MIN_LABEL = 1
MAX_LABEL = 20


def extract_features(process: ProcessRecord) -> List[float]:
    return [
        float(process.arrival_time),
        float(process.priority),
        float(process.memory_required),
        float(process.io_operations),
    ]


@dataclass(frozen=True)
class TrainingSample:
    features: Tuple[float, ...]
    label: float


@dataclass(frozen=True)
class Leaf:
    value: float


@dataclass(frozen=True)
class Split:
    feature_index: int
    threshold: float
    left: "Node"
    right: "Node"


Node = Union[Leaf, Split]


def generate_synthetic_samples(n: int, rng: np.random.Generator) -> List[TrainingSample]:
    """Synthesize labelled samples where burst grows with priority, memory and I/O."""
    samples: List[TrainingSample] = []
    for _ in range(n):
        arrival = int(rng.integers(0, 10))
        priority = int(rng.integers(1, 11))
        memory = int(rng.integers(10, 110))
        io_ops = int(rng.integers(0, 5))
        noise = rng.random() * 3
        burst = math.floor(priority * 0.5 + memory * 0.05 + io_ops * 0.8 + noise)
        label = max(MIN_LABEL, min(MAX_LABEL, burst))
        samples.append(TrainingSample((arrival, priority, memory, io_ops), float(label)))
    return samples


def build_tree(
    X: np.ndarray,
    y: np.ndarray,
    rng: np.random.Generator,
    depth: int = 0,
    max_depth: int = MAX_DEPTH,
    min_samples_split: int = MIN_SAMPLES_SPLIT,
) -> Node:
    """Grow a tree with one random feature per node split at its positional median."""
    if depth >= max_depth or len(y) < min_samples_split:
        return Leaf(float(y.mean()))

    feature_index = int(rng.integers(0, X.shape[1]))
    column = X[:, feature_index]
    threshold = float(column[len(column) // 2])
    mask = column <= threshold

    if mask.all() or not mask.any():
        return Leaf(float(y.mean()))

    return Split(
        feature_index=feature_index,
        threshold=threshold,
        left=build_tree(X[mask], y[mask], rng, depth + 1, max_depth, min_samples_split),
        right=build_tree(X[~mask], y[~mask], rng, depth + 1, max_depth, min_samples_split),
    )


def predict_with_tree(node: Node, features: Sequence[float]) -> float:
    while isinstance(node, Split):
        node = node.left if features[node.feature_index] <= node.threshold else node.right
    return node.value


def tree_depth(node: Node) -> int:
    if isinstance(node, Leaf):
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


class BurstTimePredictor:
    """Bagged ensemble of shallow random trees that estimates burst times.

    Starts from synthetic samples, trains lazily on first prediction and
    retrains every `retrain_interval` samples as actual bursts are fed back.
    """

    def __init__(
        self,
        num_trees: int = NUM_TREES,
        max_depth: int = MAX_DEPTH,
        min_samples_split: int = MIN_SAMPLES_SPLIT,
        retrain_interval: int = RETRAIN_INTERVAL,
        synthetic_samples: int = SYNTHETIC_SAMPLES,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        if num_trees < 1:
            raise InvalidInputError(f"num_trees must be >= 1, got {num_trees}")
        if retrain_interval < 1:
            raise InvalidInputError(f"retrain_interval must be >= 1, got {retrain_interval}")
        self.num_trees = num_trees
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.retrain_interval = retrain_interval
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.training_data: List[TrainingSample] = generate_synthetic_samples(synthetic_samples, self.rng)
        self.trees: List[Node] = []

    @property
    def is_trained(self) -> bool:
        return bool(self.trees)

    def train(self) -> None:
        if not self.training_data:
            raise InvalidInputError("cannot train on an empty training set")

        X = np.array([s.features for s in self.training_data], dtype=float)
        y = np.array([s.label for s in self.training_data], dtype=float)
        n = len(y)

        trees: List[Node] = []
        for _ in range(self.num_trees):
            # bootstrap sample, same size as the training set
            idx = self.rng.integers(0, n, size=n)
            trees.append(build_tree(X[idx], y[idx], self.rng, max_depth=self.max_depth,
                                    min_samples_split=self.min_samples_split))
        self.trees = trees
        logger.info("Trained %d trees on %d samples", len(trees), n)

    def predict_burst_time(self, process: ProcessRecord) -> int:
        features = extract_features(process)
        if not self.trees:
            logger.warning("Predictor not trained yet; training on %d samples", len(self.training_data))
            self.train()
        predictions = [predict_with_tree(tree, features) for tree in self.trees]
        return max(1, round_half_up(float(np.mean(predictions))))

    def predict_burst_times(self, processes: Sequence[ProcessRecord]) -> List[int]:
        return [self.predict_burst_time(p) for p in processes]

    def evaluate_model(self, test_processes: Sequence[ProcessRecord]) -> Dict[str, float]:
        """Mean squared and mean absolute error against actual burst times."""
        if not test_processes:
            raise InvalidInputError("cannot evaluate on an empty process set")
        actual = [p.burst_time for p in test_processes]
        predicted = self.predict_burst_times(test_processes)
        return {
            "mse": float(mean_squared_error(actual, predicted)),
            "mae": float(mean_absolute_error(actual, predicted)),
        }

    def add_training_data(self, process: ProcessRecord, actual_burst_time: float) -> None:
        if actual_burst_time <= 0:
            raise InvalidInputError(f"process {process.id}: actual burst time must be positive, got {actual_burst_time}")
        self.training_data.append(TrainingSample(tuple(extract_features(process)), float(actual_burst_time)))
        if len(self.training_data) % self.retrain_interval == 0:
            logger.info("Training set reached %d samples; retraining", len(self.training_data))
            self.train()

    def training_frame(self) -> pd.DataFrame:
        rows = [dict(zip(FEATURE_NAMES, s.features), burst_time=s.label) for s in self.training_data]
        return pd.DataFrame(rows, columns=FEATURE_NAMES + ["burst_time"])

    def prediction_frame(self, processes: Sequence[ProcessRecord]) -> pd.DataFrame:
        predicted = self.predict_burst_times(processes)
        df = pd.DataFrame({
            "id": [p.id for p in processes],
            "name": [p.name for p in processes],
            "actual_burst": [p.burst_time for p in processes],
            "predicted_burst": predicted,
        })
        df["abs_error"] = (df["predicted_burst"] - df["actual_burst"]).abs()
        return df
