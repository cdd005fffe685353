from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from loguru import logger

import filter_transform
from entropy_split import EntropySplitSearch, SplitSearchResult
from filter_transform import FittedTransform


@dataclass
class Unexpanded:
    X: np.ndarray
    y: np.ndarray


@dataclass
class Split:
    feature_index: int
    threshold: float
    transform: FittedTransform
    left: Node
    right: Node
    feature_name: str = ""
    gain: float = 0.0
    n_samples: int = 0


@dataclass
class Leaf:
    distribution: np.ndarray
    class_counts: np.ndarray

    @property
    def n_samples(self) -> int:
        return int(self.class_counts.sum())


NodeState = Unexpanded | Split | Leaf


class Node:
    """Mutable cell holding one node state; Unexpanded becomes Split or Leaf once."""

    def __init__(self, state: NodeState, depth: int = 0) -> None:
        self.state = state
        self.depth = depth

    @property
    def is_leaf(self) -> bool:
        return isinstance(self.state, Leaf)

    @property
    def is_split(self) -> bool:
        return isinstance(self.state, Split)

    def unexpanded(self) -> Unexpanded:
        if not isinstance(self.state, Unexpanded):
            raise RuntimeError(f"Node already expanded into {type(self.state).__name__}")
        return self.state

    def become_leaf(self, n_classes: int) -> Leaf:
        unexpanded = self.unexpanded()
        class_counts = np.bincount(unexpanded.y, minlength=n_classes).astype(np.float64)
        total = class_counts.sum()
        distribution = class_counts / total if total > 0 else np.zeros(n_classes, dtype=np.float64)
        self.state = Leaf(distribution=distribution, class_counts=class_counts)
        return self.state

    def become_split(self, split: Split) -> Split:
        self.unexpanded()
        self.state = split
        return self.state

    def __repr__(self) -> str:
        return f"Node(depth={self.depth}, state={type(self.state).__name__})"


@dataclass
class TreeBuildMetrics:
    nodes_visited: int = 0
    nodes_split: int = 0
    leaves: int = 0
    max_depth: int = 0
    candidates_evaluated: int = 0
    split_search_time_sec: float = 0.0
    node_metrics: list[dict] = field(default_factory=list)


@dataclass
class TreeBuilderParams:
    min_instances: float = 2.0
    random_state: int = 1
    decimal_places: int = 2

    def __post_init__(self) -> None:
        if not np.isfinite(self.min_instances) or self.min_instances < 0:
            raise ValueError("min_instances must be a finite, non-negative number")
        if self.decimal_places < 0:
            raise ValueError("decimal_places must be >= 0")


def _format_number(value: float, places: int) -> str:
    """Round to ``places`` decimals and drop trailing zeros ("2.50" -> "2.5", "2.00" -> "2")."""
    text = f"{value:.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class FilterTree:
    def __init__(
        self,
        root: Node,
        n_classes: int,
        feature_names: list[str],
        params: TreeBuilderParams,
        transform_template: Any,
        metrics: TreeBuildMetrics | None = None,
    ) -> None:
        self.root = root
        self.n_classes = n_classes
        self.feature_names = feature_names
        self.params = params
        self.transform_template = transform_template
        self.metrics = metrics if metrics is not None else TreeBuildMetrics()

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    def predict_row(self, x: np.ndarray) -> np.ndarray:
        node = self.root
        while not node.is_leaf:
            split = node.state
            assert isinstance(split, Split)

            # Each node's transform sees the original example, not its parent's output.
            transformed = split.transform.apply_one(x)
            assert transformed.shape[0] > split.feature_index

            node = split.left if transformed[split.feature_index] < split.threshold else split.right

        return node.state.distribution.copy()

    def predict_batch(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        preds = np.zeros((X.shape[0], self.n_classes), dtype=np.float64)
        for i in range(X.shape[0]):
            preds[i] = self.predict_row(X[i])
        return preds

    def iter_nodes(self):
        """Yield nodes depth first, left subtree before right."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if node.is_split:
                stack.append(node.state.right)
                stack.append(node.state.left)

    def leaves(self) -> list[Leaf]:
        return [node.state for node in self.iter_nodes() if node.is_leaf]

    def depth(self) -> int:
        return max(node.depth for node in self.iter_nodes())

    def count_nodes(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def render(self, decimal_places: int | None = None) -> str:
        places = self.params.decimal_places if decimal_places is None else decimal_places
        lines: list[str] = []

        # Work items: a node to describe, or a literal line to emit.
        stack: list[tuple[Node | None, str, str | None]] = [(self.root, "", None)]
        while stack:
            node, indent, text = stack.pop()
            if text is not None:
                lines.append(text)
                continue

            assert node is not None
            if node.is_split:
                split = node.state
                threshold = _format_number(split.threshold, places)
                child_indent = indent + "|   "
                stack.append((split.right, child_indent, None))
                stack.append((None, "", f"\n{indent}{split.feature_name} >= {threshold}"))
                stack.append((split.left, child_indent, None))
                stack.append((None, "", f"\n{indent}{split.feature_name} < {threshold}"))
            else:
                counts = " ".join(_format_number(count, places) for count in node.state.class_counts)
                lines.append(f": {counts}")

        return "".join(lines).lstrip("\n")

    def __str__(self) -> str:
        return self.render()


class TreeBuilder:
    def __init__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        n_classes: int,
        feature_names: list[str],
        transform_template: Any,
        params: TreeBuilderParams,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.X = np.ascontiguousarray(np.asarray(X, dtype=np.float64))
        self.y = np.asarray(y, dtype=np.int64)
        self.n_classes = n_classes
        self.feature_names = feature_names
        self.transform_template = transform_template
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng(params.random_state)

        self.n_samples, self.n_features = self.X.shape
        self.metrics = TreeBuildMetrics()

    def _draw_seed(self) -> int:
        return int(self.rng.integers(1, 2**31 - 1))

    def _partition_rows(
        self, X_transformed: np.ndarray, result: SplitSearchResult
    ) -> np.ndarray:
        return X_transformed[:, result.feature] < result.threshold

    def _make_leaf(self, node: Node, reason: str) -> None:
        leaf = node.become_leaf(self.n_classes)
        self.metrics.leaves += 1
        logger.trace(
            "Leaf at depth {} ({}): counts={}",
            node.depth,
            reason,
            leaf.class_counts.astype(np.int64).tolist(),
        )

    def expand(self, node: Node) -> tuple[Node, Node] | None:
        """Turn one Unexpanded node into a Leaf or a Split.

        Returns the two new Unexpanded children of a Split, or None for a Leaf.
        """
        unexpanded = node.unexpanded()
        X, y = unexpanded.X, unexpanded.y
        n_node = X.shape[0]
        self.metrics.nodes_visited += 1
        self.metrics.max_depth = max(self.metrics.max_depth, node.depth)

        if n_node <= self.params.min_instances:
            self._make_leaf(node, "min_instances")
            return None

        seed = self._draw_seed()
        instance = filter_transform.instantiate(self.transform_template)
        fitted = filter_transform.fit(instance, X, y, seed)
        X_transformed = fitted.apply_batch(X)

        result = EntropySplitSearch(X_transformed, y, self.n_classes).search()
        self.metrics.candidates_evaluated += result.metrics.candidates_evaluated
        self.metrics.split_search_time_sec += result.metrics.time_spent_sec
        self.metrics.node_metrics.append(
            {
                "depth": node.depth,
                "node_size": int(n_node),
                "seed": seed,
                "n_features_transformed": int(X_transformed.shape[1]),
                "candidates_evaluated": result.metrics.candidates_evaluated,
                "candidates_accepted": result.metrics.candidates_accepted,
                "gain": result.gain,
            }
        )

        if result.feature is None or result.gain <= 0.0:
            self._make_leaf(node, "no_gain")
            return None

        left_mask = self._partition_rows(X_transformed, result)
        left = Node(Unexpanded(X[left_mask], y[left_mask]), depth=node.depth + 1)
        right = Node(Unexpanded(X[~left_mask], y[~left_mask]), depth=node.depth + 1)

        feature_name = fitted.feature_names(self.feature_names, X_transformed.shape[1])[result.feature]
        node.become_split(
            Split(
                feature_index=result.feature,
                threshold=result.threshold,
                transform=fitted,
                left=left,
                right=right,
                feature_name=feature_name,
                gain=result.gain,
                n_samples=int(n_node),
            )
        )
        self.metrics.nodes_split += 1
        logger.trace(
            "Split at depth {}: {} < {} (gain={:.4f}, {} | {})",
            node.depth,
            feature_name,
            result.threshold,
            result.gain,
            int(left_mask.sum()),
            int((~left_mask).sum()),
        )
        return left, right

    def build_tree(self) -> FilterTree:
        root = Node(Unexpanded(self.X, self.y), depth=0)
        stack = [root]

        # Right is pushed before left so the whole left subtree is expanded
        # (and draws its seeds) before the right one.
        while stack:
            node = stack.pop()
            children = self.expand(node)
            if children is not None:
                left, right = children
                stack.append(right)
                stack.append(left)

        logger.debug(
            "Built filter tree: {} nodes visited, {} splits, {} leaves, depth {}",
            self.metrics.nodes_visited,
            self.metrics.nodes_split,
            self.metrics.leaves,
            self.metrics.max_depth,
        )
        return FilterTree(
            root=root,
            n_classes=self.n_classes,
            feature_names=self.feature_names,
            params=self.params,
            transform_template=self.transform_template,
            metrics=self.metrics,
        )
