"""Tests for WebSocket manager and the /ws endpoint."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from soragen.tasks import Task, TaskEvent, TaskStatus
from soragen.web.backend.websocket.manager import WebSocketManager


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket."""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


class TestWebSocketManager:
    """Tests for WebSocketManager."""

    @pytest.mark.asyncio
    async def test_connect(self, ws_manager: WebSocketManager, mock_websocket):
        """Test connecting a client."""
        await ws_manager.connect(mock_websocket, "client-1")
        assert ws_manager.connection_count == 1
        mock_websocket.accept.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnect(self, ws_manager: WebSocketManager, mock_websocket):
        """Test disconnecting a client."""
        await ws_manager.connect(mock_websocket, "client-1")
        ws_manager.disconnect("client-1")
        assert ws_manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_send_snapshot(self, ws_manager: WebSocketManager, mock_websocket):
        """Test the initial task list sent on connect."""
        await ws_manager.connect(mock_websocket, "client-1")
        task = Task(id="t1", prompt="A cat in rain")

        assert await ws_manager.send_snapshot("client-1", [task]) is True

        message = mock_websocket.send_json.call_args[0][0]
        assert message["type"] == "initial_data"
        assert [t["id"] for t in message["tasks"]] == ["t1"]

    @pytest.mark.asyncio
    async def test_broadcast_to_all_clients(self, ws_manager: WebSocketManager):
        """Test that broadcasts reach every connected client."""
        ws1, ws2 = AsyncMock(), AsyncMock()
        await ws_manager.connect(ws1, "client-1")
        await ws_manager.connect(ws2, "client-2")

        await ws_manager.broadcast({"type": "task_update"})

        ws1.send_json.assert_called_once_with({"type": "task_update"})
        ws2.send_json.assert_called_once_with({"type": "task_update"})

    @pytest.mark.asyncio
    async def test_on_task_event_schedules_broadcast(
        self, ws_manager: WebSocketManager, mock_websocket
    ):
        """Test a task event is delivered on the manager's loop."""
        ws_manager.set_event_loop(asyncio.get_running_loop())
        await ws_manager.connect(mock_websocket, "client-1")
        task = Task(id="t1", prompt="p", status=TaskStatus.PROCESSING, progress=10)

        ws_manager.on_task_event(TaskEvent(type="task_update", task=task))
        assert len(ws_manager._broadcasts) == 1
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not ws_manager._broadcasts

        message = mock_websocket.send_json.call_args[0][0]
        assert message["type"] == "task_update"
        assert message["task"]["status"] == "processing"
        assert message["task"]["progress"] == 10

    def test_on_task_event_without_loop(self, ws_manager: WebSocketManager):
        """Test events before startup are dropped quietly."""
        ws_manager.on_task_event(TaskEvent(type="task_created", task=Task(id="t1", prompt="p")))

    @pytest.mark.asyncio
    async def test_send_to_client(
        self, ws_manager: WebSocketManager, mock_websocket
    ):
        """Test sending a message to a specific client."""
        await ws_manager.connect(mock_websocket, "client-1")

        result = await ws_manager.send_to_client(
            "client-1", {"type": "test", "data": "hello"}
        )

        assert result is True
        mock_websocket.send_json.assert_called_once_with(
            {"type": "test", "data": "hello"}
        )

    @pytest.mark.asyncio
    async def test_send_to_nonexistent_client(
        self, ws_manager: WebSocketManager
    ):
        """Test sending to a non-existent client."""
        result = await ws_manager.send_to_client(
            "nonexistent", {"type": "test"}
        )
        assert result is False

    @pytest.mark.asyncio
    async def test_handle_send_error(
        self, ws_manager: WebSocketManager
    ):
        """Test handling errors when sending messages."""
        mock_ws = AsyncMock()
        mock_ws.accept = AsyncMock()
        mock_ws.send_json = AsyncMock(side_effect=Exception("Connection closed"))

        await ws_manager.connect(mock_ws, "client-1")

        # Should not raise, should disconnect client
        await ws_manager.broadcast({"type": "task_completed"})

        # Client should be disconnected
        assert ws_manager.connection_count == 0


class TestWebSocketEndpoint:
    """Tests for the /ws endpoint."""

    def test_initial_data_on_connect(self, test_client: TestClient) -> None:
        test_client.post("/api/tasks", json={"prompt": "T1"})

        with test_client.websocket_connect("/ws") as websocket:
            message = websocket.receive_json()

        assert message["type"] == "initial_data"
        assert [t["prompt"] for t in message["tasks"]] == ["T1"]

    def test_task_created_is_pushed(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as websocket:
            assert websocket.receive_json() == {"type": "initial_data", "tasks": []}

            created = test_client.post("/api/tasks", json={"prompt": "T1"}).json()["task"]
            message = websocket.receive_json()

        assert message["type"] == "task_created"
        assert message["task"] == created

    def test_refresh_resends_snapshot(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "refresh"})
            message = websocket.receive_json()

        assert message == {"type": "initial_data", "tasks": []}

    def test_non_json_frame_is_ignored(self, test_client: TestClient) -> None:
        """Test a garbage frame neither kills the socket nor leaks it."""
        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_text("not json")
            websocket.send_json({"type": "refresh"})
            assert websocket.receive_json()["type"] == "initial_data"

        assert test_client.get("/health").json()["connections"] == 0

    def test_health_counts_connections(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            assert test_client.get("/health").json()["connections"] == 1
