from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from koi_explorer.api.app import create_app
from koi_explorer.config import Settings
from koi_explorer.ui.views import store


class FakeResponse:
    """Stand-in for requests.Response with just what the code reads."""

    def __init__(self, status_code: int = 200, text: str = "", reason: str = "OK") -> None:
        self.status_code = status_code
        self.text = text
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


@pytest.fixture
def sample_rows() -> List[Dict[str, Any]]:
    return [
        {
            "kepoi_name": "K00752.01",
            "kepler_name": "Kepler-227 b",
            "koi_disposition": "CONFIRMED",
            "koi_score": 1.0,
            "koi_period": 9.488035570,
            "koi_prad": 2.26,
            "koi_teq": 793.0,
            "koi_comment": None,
        },
        {
            "kepoi_name": "K00753.01",
            "kepler_name": None,
            "koi_disposition": "CANDIDATE",
            "koi_score": 0.969,
            "koi_period": 19.899139950,
            "koi_prad": 14.6,
            "koi_teq": 638.0,
            "koi_comment": 'NO_COMMENT, "see DV report"',
        },
        {
            "kepoi_name": "K00754.01",
            "kepler_name": None,
            "koi_disposition": "FALSE POSITIVE",
            "koi_score": None,
            "koi_period": 1.736952453,
            "koi_prad": None,
            "koi_teq": 1395.0,
            "koi_comment": "line one\nline two",
        },
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        tap_url="https://tap.example.test/TAP/sync",
        api_url="http://proxy.example.test/api/exoplanets",
        upstream_timeout=30.0,
        secret_key="test",
    )


@pytest.fixture
def app(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    store.clear()
    yield app
    store.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_get(monkeypatch):
    """Patch requests.get; returns the list of recorded calls.

    Set `fake_get.responses` to a list of FakeResponse (or exceptions) to
    serve them in order.
    """

    class Recorder:
        def __init__(self) -> None:
            self.calls: List[Dict[str, Any]] = []
            self.responses: List[Any] = []

        def __call__(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any):
            self.calls.append({"url": url, "params": params, **kwargs})
            item = self.responses.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item

    recorder = Recorder()
    monkeypatch.setattr("requests.get", recorder)
    return recorder
