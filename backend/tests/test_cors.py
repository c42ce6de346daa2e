import importlib
import sys

import pytest
from fastapi.middleware.cors import CORSMiddleware

_RELOADED = ("betleague.main", "betleague.config")


def _cleanup_app_modules():
    for module in _RELOADED:
        sys.modules.pop(module, None)


@pytest.fixture(autouse=True)
def app_import_isolation():
    saved = {name: sys.modules.get(name) for name in _RELOADED}
    _cleanup_app_modules()
    try:
        yield
    finally:
        _cleanup_app_modules()
        for name, module in saved.items():
            if module is not None:
                sys.modules[name] = module


def _has_cors(app):
    return any(m.cls is CORSMiddleware for m in app.user_middleware)


def test_rejects_wildcard_origin(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://league.example, *")
    with pytest.raises(ValueError):
        importlib.import_module("betleague.main")


def test_cors_disabled_without_origins(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    main = importlib.import_module("betleague.main")
    assert not _has_cors(main.app)


def test_cors_enabled_for_explicit_origins(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://league.example,https://admin.example")
    main = importlib.import_module("betleague.main")
    assert _has_cors(main.app)
    config = importlib.import_module("betleague.config")
    assert config.ALLOWED_ORIGINS == ["https://league.example", "https://admin.example"]
