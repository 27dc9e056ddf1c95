"""Model loader: import Python modules and discover Snapshot/Relationship types."""

from __future__ import annotations

import importlib
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aspectql.types import Aspect, Relationship, Snapshot


@dataclass
class Models:
    """Classes found in a models module, keyed by class name."""

    snapshots: dict[str, type[Snapshot]] = field(default_factory=dict)
    relationships: dict[str, type[Relationship[Any, Any]]] = field(default_factory=dict)
    aspects: dict[str, type[Aspect]] = field(default_factory=dict)


def load_models(models: str | None = None, models_path: str | None = None) -> Models:
    """Load Snapshot, Relationship and Aspect classes from a Python module.

    Args:
        models: Dotted Python import path (e.g. 'myapp.models')
        models_path: Filesystem path to a Python file
    """
    if models_path:
        path = Path(models_path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Models path not found: {models_path}")
        # Add parent to sys.path so import works
        parent = str(path.parent)
        if parent not in sys.path:
            sys.path.insert(0, parent)
        module = importlib.import_module(path.stem)
    elif models:
        module = importlib.import_module(models)
    else:
        raise ValueError("One of --models or --models-path is required")

    found = Models()
    for attr_name in dir(module):
        obj = getattr(module, attr_name)
        if not isinstance(obj, type):
            continue
        if issubclass(obj, Snapshot) and obj is not Snapshot:
            found.snapshots[obj.__name__] = obj
        elif issubclass(obj, Relationship) and obj is not Relationship:
            # Skip parametrized generic aliases such as Relationship[FooUrn, FooUrn]
            if "[" not in obj.__name__:
                found.relationships[obj.__name__] = obj
        elif issubclass(obj, Aspect) and obj is not Aspect:
            found.aspects[obj.__name__] = obj
    return found
