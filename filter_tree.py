"""Classification tree with a locally fitted transform at every split node.

Entry points:

- ``build_tree(X, y, ...)`` builds a ``FilterTree`` from class indices.
- ``predict(tree, x)`` returns the class distribution for one example.
- ``render_tree(tree)`` dumps the tree as indented text.
- ``FilterTreeClassifier`` wraps the above with arbitrary class labels.
- ``enable_logging()`` turns on build logging.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from loguru import logger

from exceptions import InvalidInputError
from filter_transform import identity_transform
from tree_logging import enable_logging
from tree_builder import FilterTree, TreeBuilder, TreeBuilderParams

__all__ = [
    "FilterTree",
    "FilterTreeClassifier",
    "build_tree",
    "enable_logging",
    "predict",
    "render_tree",
]


def _validate_features(X: Any) -> np.ndarray:
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise InvalidInputError(f"X must be a 2D array, got {X.ndim} dimension(s)")
    if X.shape[0] == 0:
        raise InvalidInputError("Dataset is empty")
    if not np.all(np.isfinite(X)):
        raise InvalidInputError("X contains missing or non-finite values")
    return X


def _validate_labels(y: Any, n_rows: int, n_classes: int | None) -> tuple[np.ndarray, int]:
    y = np.asarray(y)
    if y.ndim != 1 or y.shape[0] != n_rows:
        raise InvalidInputError("y must be a 1D array with the same number of rows as X")
    if y.size == 0:
        raise InvalidInputError("Dataset is empty")

    if not np.issubdtype(y.dtype, np.integer):
        if not np.issubdtype(y.dtype, np.floating) or not np.all(np.mod(y, 1) == 0):
            raise InvalidInputError("y must contain integer class indices")
    y = y.astype(np.int64)

    distinct = int(np.unique(y).size)
    if distinct < 1:
        raise InvalidInputError("y must contain at least one class")
    if n_classes is None:
        n_classes = distinct

    if y.min() < 0 or y.max() >= n_classes:
        raise InvalidInputError(
            f"Class labels must lie in [0, {n_classes}), got range [{y.min()}, {y.max()}]"
        )
    return y, n_classes


def build_tree(
    X: Any,
    y: Any,
    *,
    seed: int = 1,
    min_instances: float = 2.0,
    transform: Any = None,
    n_classes: int | None = None,
    feature_names: list[str] | None = None,
    decimal_places: int = 2,
) -> FilterTree:
    """Build a filter tree from a feature matrix and integer class indices.

    Args:
        X: Feature matrix with shape ``(n_samples, n_features)``.
        y: Class indices in ``[0, n_classes)``.
        seed: Seeds the tree-level RNG; one seed is drawn per expanded node.
        min_instances: Nodes with at most this many rows become leaves.
        transform: Unfitted scikit-learn style transformer cloned and fitted at
            every node. ``None`` uses the identity transform.
        n_classes: Number of classes; defaults to the distinct label count.
        feature_names: Input feature names used when rendering.
        decimal_places: Precision used by ``render_tree``.

    Returns:
        FilterTree: The built tree.

    Raises:
        InvalidInputError: If the data is empty or malformed.
        TransformError: If a node transform fails to fit or apply.
    """
    X = _validate_features(X)
    y, n_classes = _validate_labels(y, X.shape[0], n_classes)

    if feature_names is None:
        feature_names = [f"x{i}" for i in range(X.shape[1])]
    elif len(feature_names) != X.shape[1]:
        raise InvalidInputError(
            f"Got {len(feature_names)} feature names for {X.shape[1]} features"
        )

    params = TreeBuilderParams(
        min_instances=min_instances,
        random_state=seed,
        decimal_places=decimal_places,
    )
    template = identity_transform() if transform is None else transform
    logger.debug(
        "Building filter tree on {} rows, {} features, {} classes (transform={})",
        X.shape[0],
        X.shape[1],
        n_classes,
        type(template).__name__,
    )

    builder = TreeBuilder(
        X=X,
        y=y,
        n_classes=n_classes,
        feature_names=list(feature_names),
        transform_template=template,
        params=params,
    )
    return builder.build_tree()


def predict(tree: FilterTree, x: Any) -> np.ndarray:
    """Class distribution for a single example."""
    x = np.asarray(x, dtype=np.float64)
    if x.shape != (tree.n_features,):
        raise InvalidInputError(f"Expected an example with {tree.n_features} features, got shape {x.shape}")
    return tree.predict_row(x)


def render_tree(tree: FilterTree, decimal_places: int | None = None) -> str:
    return tree.render(decimal_places)


class FilterTreeClassifier:
    """Estimator-style wrapper mapping arbitrary class labels to tree indices."""

    def __init__(
        self,
        transform: Any = None,
        min_instances: float = 2.0,
        random_state: int = 1,
        decimal_places: int = 2,
    ) -> None:
        self.transform = transform
        self.min_instances = min_instances
        self.random_state = random_state
        self.decimal_places = decimal_places

        self.tree_: FilterTree | None = None
        self.classes_: np.ndarray | None = None
        self.metrics_ = None

    def fit(self, X: Any, y: Any, feature_names: list[str] | None = None) -> FilterTreeClassifier:
        y = np.asarray(y)
        if y.ndim != 1 or y.size == 0:
            raise InvalidInputError("y must be a non-empty 1D array")

        self.classes_, y_idx = np.unique(y, return_inverse=True)
        self.tree_ = build_tree(
            X,
            y_idx,
            seed=self.random_state,
            min_instances=self.min_instances,
            transform=self.transform,
            n_classes=self.classes_.size,
            feature_names=feature_names,
            decimal_places=self.decimal_places,
        )
        self.metrics_ = self.tree_.metrics
        return self

    def predict_proba(self, X: Any) -> np.ndarray:
        if self.tree_ is None:
            raise RuntimeError("Model must be fitted before prediction")

        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.tree_.n_features:
            raise InvalidInputError(
                f"X must be a 2D array with {self.tree_.n_features} columns, got shape {X.shape}"
            )
        return self.tree_.predict_batch(X)

    def predict(self, X: Any) -> np.ndarray:
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def score(self, X: Any, y: Any) -> float:
        return float(np.mean(self.predict(X) == np.asarray(y)))

    def __str__(self) -> str:
        if self.tree_ is None:
            return "FilterTree: has not been built yet"
        return self.tree_.render(self.decimal_places)
