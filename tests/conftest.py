"""Pytest configuration and fixtures for Lab Auditor tests."""

from typing import Callable, Dict

import httpx
import pytest

from labaudit.config import TargetConfig

BASE_URL = "http://lab.test"


@pytest.fixture
def target(tmp_path) -> TargetConfig:
    """Target with no retries, rooted at a temporary project tree."""
    return TargetConfig(
        base_url=BASE_URL,
        token="test-token",
        project_root=str(tmp_path),
        reports_dir=str(tmp_path / "reports"),
        timeout=5.0,
        max_retries=0,
    )


@pytest.fixture
def routes_transport() -> Callable[[Dict[str, object]], httpx.MockTransport]:
    """Build a MockTransport from {"METHOD /path": status | httpx.Response | callable}."""
    def _build(routes: Dict[str, object]) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            answer = routes.get(f"{request.method} {request.url.path}", 404)
            if callable(answer):
                return answer(request)
            if isinstance(answer, httpx.Response):
                return answer
            return httpx.Response(answer)
        return httpx.MockTransport(handler)
    return _build
