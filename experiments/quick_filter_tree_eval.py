import argparse
import time
import sys
from pathlib import Path

import numpy as np

# Allow running as: python experiments/quick_filter_tree_eval.py
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from filter_tree import FilterTreeClassifier, enable_logging

TRANSFORMS = ("identity", "standardize", "pca", "random_projection")


def _subsample(X, y, max_samples, rng):
    if max_samples is None or X.shape[0] <= max_samples:
        return X, y
    idx = rng.choice(X.shape[0], size=max_samples, replace=False)
    return X[idx], y[idx]


def _train_test_split(X, y, test_size, random_state):
    rng = np.random.default_rng(random_state)
    train_parts = []
    test_parts = []
    for c in np.unique(y):
        idx = np.where(y == c)[0]
        rng.shuffle(idx)
        n_test = max(1, int(round(idx.size * test_size)))
        test_parts.append(idx[:n_test])
        train_parts.append(idx[n_test:])
    train_idx = np.concatenate(train_parts)
    test_idx = np.concatenate(test_parts)
    rng.shuffle(train_idx)
    rng.shuffle(test_idx)
    return X[train_idx], X[test_idx], y[train_idx], y[test_idx]


def load_dataset(name: str, random_state: int, max_samples: int | None):
    rng = np.random.default_rng(random_state)
    key = name.lower()

    if key == "iris":
        from sklearn.datasets import load_iris

        ds = load_iris()
        X, y = ds.data.astype(np.float64), ds.target
    elif key == "breast_cancer":
        from sklearn.datasets import load_breast_cancer

        ds = load_breast_cancer()
        X, y = ds.data.astype(np.float64), ds.target
    elif key == "synthetic_clf":
        n_samples = 2000
        n_features = 10
        X = rng.normal(size=(n_samples, n_features))
        # Oblique boundary: axis-aligned splits need many steps to follow it.
        w = rng.normal(size=n_features)
        logits = X @ w + 0.5 * rng.normal(size=n_samples)
        y = (logits > 0).astype(np.int64)
    else:
        raise ValueError(f"Unknown dataset '{name}'. Choose from: iris, breast_cancer, synthetic_clf")

    X, y = _subsample(X, y, max_samples=max_samples, rng=rng)
    return X, y


def make_transform(name: str, n_features: int):
    key = name.lower()
    if key == "identity":
        return None
    if key == "standardize":
        from sklearn.preprocessing import StandardScaler

        return StandardScaler()
    if key == "pca":
        from sklearn.decomposition import PCA

        return PCA(n_components=min(n_features, 2))
    if key == "random_projection":
        from sklearn.random_projection import GaussianRandomProjection

        return GaussianRandomProjection(n_components=n_features)
    raise ValueError(f"Unknown transform '{name}'. Choose from: {', '.join(TRANSFORMS)}")


def evaluate_one(X, y, transform_name, min_instances, random_state):
    X_train, X_test, y_train, y_test = _train_test_split(X, y, test_size=0.2, random_state=random_state)

    model = FilterTreeClassifier(
        transform=make_transform(transform_name, X.shape[1]),
        min_instances=min_instances,
        random_state=random_state,
    )
    t0 = time.perf_counter()
    model.fit(X_train, y_train)
    fit_time = time.perf_counter() - t0

    metrics = model.metrics_
    return {
        "fit_time_sec": fit_time,
        "accuracy": model.score(X_test, y_test),
        "train_accuracy": model.score(X_train, y_train),
        "nodes_split": metrics.nodes_split,
        "leaves": metrics.leaves,
        "depth": metrics.max_depth,
        "candidates_evaluated": metrics.candidates_evaluated,
        "split_search_time_sec": metrics.split_search_time_sec,
    }


def main():
    parser = argparse.ArgumentParser(description="Quick FilterTree checks on small datasets")
    parser.add_argument(
        "--datasets",
        type=str,
        default="iris,synthetic_clf",
        help="Comma-separated: iris, breast_cancer, synthetic_clf",
    )
    parser.add_argument(
        "--transforms",
        type=str,
        default="identity,pca,random_projection",
        help=f"Comma-separated: {', '.join(TRANSFORMS)}",
    )
    parser.add_argument("--max-samples", type=int, default=2000)
    parser.add_argument("--min-instances", type=float, default=2.0)
    parser.add_argument("--random-state", type=int, default=1)
    parser.add_argument("--log-level", type=str, default=None, help="e.g. DEBUG or TRACE")
    parser.add_argument("--print-tree", action="store_true", help="Print every fitted tree.")

    args = parser.parse_args()

    datasets = [d.strip() for d in args.datasets.split(",") if d.strip()]
    transforms = [t.strip() for t in args.transforms.split(",") if t.strip()]
    if not datasets or not transforms:
        raise ValueError("No datasets or transforms provided")

    handle = enable_logging(level=args.log_level.upper()) if args.log_level else None
    try:
        for ds_name in datasets:
            X, y = load_dataset(ds_name, args.random_state, args.max_samples)
            print(f"\nDataset={ds_name} n={X.shape[0]} d={X.shape[1]} classes={np.unique(y).size}")

            for transform_name in transforms:
                out = evaluate_one(X, y, transform_name, args.min_instances, args.random_state)
                print(
                    f"FilterTree[{transform_name}]"
                    f" time={out['fit_time_sec']:.3f}s"
                    f" split_search_time={out['split_search_time_sec']:.3f}s"
                    f" acc={out['accuracy']:.4f}"
                    f" train_acc={out['train_accuracy']:.4f}"
                    f" splits={out['nodes_split']}"
                    f" leaves={out['leaves']}"
                    f" depth={out['depth']}"
                    f" candidates={out['candidates_evaluated']}"
                )
                if args.print_tree:
                    model = FilterTreeClassifier(
                        transform=make_transform(transform_name, X.shape[1]),
                        min_instances=args.min_instances,
                        random_state=args.random_state,
                    ).fit(X, y)
                    print(model)
    finally:
        if handle is not None:
            handle.disable()


if __name__ == "__main__":
    main()
