"""Unit tests for reelbridge.__version__."""

from __future__ import annotations

import importlib.metadata
import importlib.util
from pathlib import Path

import pytest

import reelbridge

_INIT = Path(__file__).resolve().parents[2] / "src" / "reelbridge" / "__init__.py"


def test_version_is_a_string() -> None:
    assert isinstance(reelbridge.__version__, str)
    assert reelbridge.__version__


def test_falls_back_without_package_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    def _not_installed(_name: str) -> str:
        raise importlib.metadata.PackageNotFoundError

    monkeypatch.setattr(importlib.metadata, "version", _not_installed)
    module_spec = importlib.util.spec_from_file_location("reelbridge_uninstalled", _INIT)
    assert module_spec is not None and module_spec.loader is not None
    module = importlib.util.module_from_spec(module_spec)

    with pytest.warns(RuntimeWarning, match="'reelbridge' not found"):
        module_spec.loader.exec_module(module)

    assert module.__version__ == "0.0.0+unknown"
