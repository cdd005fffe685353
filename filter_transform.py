from __future__ import annotations

from typing import Any

import numpy as np
from loguru import logger
from sklearn.base import clone
from sklearn.preprocessing import FunctionTransformer

from exceptions import TransformError
import tree_logging  # noqa: F401  disables module logging until enable_logging()


def identity_transform() -> FunctionTransformer:
    """Default node transform: passes features through unchanged."""
    return FunctionTransformer(feature_names_out="one-to-one")


def _name_of(transform: Any) -> str:
    return type(transform).__name__


def instantiate(template: Any) -> Any:
    """Return an unfitted, independent copy of a transform template."""
    try:
        return clone(template)
    except Exception as exc:
        raise TransformError("clone", _name_of(template), str(exc)) from exc


def fit(instance: Any, X: np.ndarray, y: np.ndarray, seed: int) -> FittedTransform:
    """Seed (when randomizable) and fit a transform instance on one node's data."""
    try:
        if "random_state" in instance.get_params(deep=False):
            instance.set_params(random_state=seed)
        instance.fit(X, y)
    except Exception as exc:
        raise TransformError("fit", _name_of(instance), str(exc)) from exc

    logger.trace("Fitted {} on {} rows (seed={})", _name_of(instance), X.shape[0], seed)
    return FittedTransform(instance, n_features_in=X.shape[1])


class FittedTransform:
    """A transform fitted to one node's training rows.

    The same instance is used for the node's split search and for routing
    examples through the node at prediction time.
    """

    def __init__(self, transformer: Any, n_features_in: int) -> None:
        self.transformer = transformer
        self.n_features_in = n_features_in

    @property
    def name(self) -> str:
        return _name_of(self.transformer)

    def apply_batch(self, X: np.ndarray) -> np.ndarray:
        try:
            out = self.transformer.transform(X)
        except Exception as exc:
            raise TransformError("apply", self.name, str(exc)) from exc

        out = np.asarray(out, dtype=np.float64)
        if out.ndim != 2 or out.shape[0] != X.shape[0]:
            raise TransformError(
                "apply",
                self.name,
                f"expected {X.shape[0]} output rows, got shape {out.shape}",
            )
        return out

    def apply_one(self, x: np.ndarray) -> np.ndarray:
        return self.apply_batch(np.asarray(x, dtype=np.float64).reshape(1, -1))[0]

    def feature_names(self, input_names: list[str], n_features_out: int) -> list[str]:
        """Names of the transformed features, used only for rendering."""
        get_names = getattr(self.transformer, "get_feature_names_out", None)
        if get_names is not None:
            try:
                return [str(name) for name in get_names(np.asarray(input_names, dtype=object))]
            except (AttributeError, ValueError) as exc:
                logger.trace("No feature names from {}: {}", self.name, exc)

        if n_features_out == len(input_names):
            return list(input_names)
        return [f"x{i}" for i in range(n_features_out)]

    def __repr__(self) -> str:
        return f"FittedTransform({self.transformer!r})"
