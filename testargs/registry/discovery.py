"""Discovery utilities for prediction and diagnostic callables."""
from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class CallableRegistry:
    """Resolves 'module:function' and 'file.py:function' references.

    File references are resolved relative to ``root`` unless absolute or
    already present relative to the working directory.
    """

    def __init__(self, root: str | Path = "models") -> None:
        self.root = Path(root)
        self._cache: Dict[str, Callable[..., Any]] = {}

    def list_model_files(self) -> List[Path]:
        if not self.root.exists():
            return []
        return sorted(self.root.rglob("run_model.py"))

    def resolve(self, reference: str) -> Callable[..., Any]:
        if reference in self._cache:
            return self._cache[reference]

        if ":" not in reference:
            raise ValueError(
                f"Invalid callable reference '{reference}'. Expected 'module:function' or 'file.py:function'"
            )
        target, attr = reference.rsplit(":", 1)
        if not target or not attr:
            raise ValueError(f"Invalid callable reference '{reference}'")

        if target.endswith(".py"):
            module = self._load_file(target)
        else:
            try:
                module = importlib.import_module(target)
            except Exception as exc:
                raise ValueError(f"Cannot import module '{target}': {exc}") from exc

        fn = getattr(module, attr, None)
        if fn is None:
            raise ValueError(f"'{target}' has no attribute '{attr}'")
        if not callable(fn):
            raise ValueError(f"'{reference}' is not callable")

        logger.debug("Resolved %s", reference)
        self._cache[reference] = fn
        return fn

    def _load_file(self, target: str):
        path = Path(target)
        if not path.is_absolute() and not path.exists():
            path = self.root / path
        if not path.exists():
            raise ValueError(f"Model file not found: {target}")

        module_name = "testargs_user_" + "_".join(path.resolve().with_suffix("").parts[-3:])
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Cannot load module from {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise ValueError(f"Cannot load module from {path}: {exc}") from exc
        return module


def resolve_callable(reference: str, root: str | Path = "models") -> Callable[..., Any]:
    return CallableRegistry(root).resolve(reference)
