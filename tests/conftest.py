from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from search_payloads import FakeSearchClient

from kidscurator.app.dependencies import get_curation_service, reset_cached_dependencies
from kidscurator.app.main import create_app
from kidscurator.app.services.curation_service import VideoCurationService
from kidscurator.app.services.pagination_cache import ContinuationCache


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KIDS_CURATOR_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("KIDS_CURATOR_TELEMETRY_SINK", "log")
    for name in (
        "KIDS_CURATOR_SEARCH_API_KEY",
        "KIDS_CURATOR_SEARCH_POLICY",
        "KIDS_CURATOR_CHANNEL_POLICY",
        "KIDS_CURATOR_CHANNEL_QUERY_TEMPLATE",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()


@pytest.fixture
def search_client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def curation_service(search_client: FakeSearchClient) -> VideoCurationService:
    return VideoCurationService(
        search_client=search_client,
        continuation_cache=ContinuationCache(),
    )


@pytest.fixture
def client(curation_service: VideoCurationService) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_curation_service] = lambda: curation_service
    with TestClient(app) as test_client:
        yield test_client
