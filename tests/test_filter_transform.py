import numpy as np
import pytest
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

import filter_transform
from exceptions import TransformError
from recording_transforms import FailingTransform, SeedRecorder, SeedRejectingTransform


def _data():
    rng = np.random.default_rng(2)
    X = rng.normal(size=(30, 4))
    y = rng.integers(0, 2, size=30)
    return X, y


def test_identity_transform_passes_values_through():
    X, y = _data()
    fitted = filter_transform.fit(filter_transform.identity_transform(), X, y, seed=5)

    np.testing.assert_array_equal(fitted.apply_batch(X), X)
    np.testing.assert_array_equal(fitted.apply_one(X[3]), X[3])
    assert fitted.feature_names(["a", "b", "c", "d"], 4) == ["a", "b", "c", "d"]


def test_instantiate_returns_independent_unfitted_copy():
    template = SeedRecorder()
    instance = filter_transform.instantiate(template)

    assert instance is not template
    filter_transform.fit(instance, *_data(), seed=17)
    assert instance.fitted_seed_ == 17
    assert not hasattr(template, "fitted_seed_")


def test_seed_is_ignored_by_deterministic_transforms():
    X, y = _data()
    fitted = filter_transform.fit(StandardScaler(), X, y, seed=99)

    assert np.allclose(fitted.apply_batch(X).mean(axis=0), 0.0)


def test_apply_one_matches_apply_batch_row():
    X, y = _data()
    fitted = filter_transform.fit(PCA(n_components=2), X, y, seed=3)

    batch = fitted.apply_batch(X)
    assert batch.shape == (30, 2)
    np.testing.assert_allclose(fitted.apply_one(X[7]), batch[7], rtol=1e-12, atol=1e-12)
    assert fitted.feature_names(["a", "b", "c", "d"], 2) == ["pca0", "pca1"]


def test_feature_names_fall_back_when_transform_has_none():
    X, y = _data()
    fitted = filter_transform.fit(SeedRecorder(), X, y, seed=1)

    assert fitted.feature_names(["a", "b", "c", "d"], 4) == ["a", "b", "c", "d"]
    assert fitted.feature_names(["a", "b", "c", "d"], 2) == ["x0", "x1"]


def test_fit_errors_are_wrapped():
    X, y = _data()

    with pytest.raises(TransformError) as excinfo:
        filter_transform.fit(FailingTransform(fail_on="fit"), X, y, seed=1)

    assert excinfo.value.stage == "fit"
    assert excinfo.value.transform_name == "FailingTransform"
    assert "cannot fit" in str(excinfo.value)


def test_apply_errors_are_wrapped():
    X, y = _data()
    fitted = filter_transform.fit(FailingTransform(fail_on="transform"), X, y, seed=1)

    with pytest.raises(TransformError) as excinfo:
        fitted.apply_one(X[0])

    assert excinfo.value.stage == "apply"
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_seed_rejection_is_reported_as_fit_error():
    X, y = _data()

    with pytest.raises(TransformError) as excinfo:
        filter_transform.fit(SeedRejectingTransform(), X, y, seed=4)

    assert excinfo.value.stage == "fit"
    assert excinfo.value.transform_name == "SeedRejectingTransform"
    assert "random_state is fixed" in str(excinfo.value)
