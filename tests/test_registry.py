from pathlib import Path

import pytest

from testargs.registry.discovery import CallableRegistry, resolve_callable

MODELS_ROOT = Path(__file__).resolve().parent.parent / "models"


def test_model_discovery():
    registry = CallableRegistry(MODELS_ROOT)
    files = registry.list_model_files()
    assert any(f.parent.name == "polynomial_v1" for f in files)


def test_resolve_module_reference():
    import math

    assert resolve_callable("math:sqrt") is math.sqrt


def test_resolve_file_reference_relative_to_root():
    fn = CallableRegistry(MODELS_ROOT).resolve("smoothing/polynomial_v1/run_model.py:fit_predict")
    assert callable(fn)
    assert fn.__name__ == "fit_predict"


def test_resolve_is_cached():
    registry = CallableRegistry(MODELS_ROOT)
    reference = "smoothing/polynomial_v1/run_model.py:diagnose"
    assert registry.resolve(reference) is registry.resolve(reference)


@pytest.mark.parametrize(
    "reference, match",
    [
        ("math.sqrt", "Invalid callable reference"),
        (":sqrt", "Invalid callable reference"),
        ("no_such_module_xyz:f", "Cannot import module"),
        ("math:no_such_function", "has no attribute"),
        ("math:pi", "is not callable"),
        ("missing/run_model.py:fit", "Model file not found"),
    ],
)
def test_resolve_invalid(reference, match):
    with pytest.raises(ValueError, match=match):
        CallableRegistry(MODELS_ROOT).resolve(reference)


def test_resolve_file_with_import_error(tmp_path):
    (tmp_path / "broken.py").write_text("import no_such_module_xyz\n\ndef fit():\n    pass\n")

    with pytest.raises(ValueError, match="Cannot load module"):
        CallableRegistry(tmp_path).resolve("broken.py:fit")
