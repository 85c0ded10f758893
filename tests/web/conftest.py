"""Test fixtures for web backend tests."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from soragen.config import Config, QueueConfig
from soragen.web.backend.app import create_app
from soragen.web.backend.config import WebConfig
from soragen.web.backend.services.task_service import TaskService
from soragen.web.backend.websocket.manager import WebSocketManager

from fakes import FakeSubmitter, ManualClock


@pytest.fixture
def test_config() -> WebConfig:
    """Create a test configuration with the periodic loops disabled."""
    return WebConfig(
        host="127.0.0.1",
        port=3000,
        cors_origins=["*"],
        start_scheduler=False,
    )


@pytest.fixture
def app_config() -> Config:
    return Config(queue=QueueConfig(max_concurrent_tasks=2))


@pytest.fixture
def ws_manager() -> WebSocketManager:
    """Create a fresh WebSocket manager for testing."""
    return WebSocketManager()


@pytest.fixture
def test_client(
    test_config: WebConfig,
    app_config: Config,
    submitter: FakeSubmitter,
    clock: ManualClock,
) -> Generator[TestClient, None, None]:
    """Create a test client backed by a fake job submitter."""
    app = create_app(test_config, app_config, submitter=submitter, clock=clock)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def service(test_client: TestClient) -> TaskService:
    """The task service owned by the test app."""
    return test_client.app.state.task_service
