import numpy as np
import pytest


@pytest.fixture
def four_point_data():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([0, 0, 1, 1])
    return X, y


@pytest.fixture
def random_classification_data():
    rng = np.random.default_rng(7)
    X = rng.normal(size=(120, 3))
    logits = 1.5 * X[:, 0] - X[:, 1] + 0.3 * rng.normal(size=120)
    y = (logits > 0).astype(np.int64) + (X[:, 2] > 1.0).astype(np.int64)
    return X, y
