"""Registry of live WebSocket connections.

Maps users and task channels to the connections subscribed to them. Pushes
are fire-and-forget: they are scheduled on the running loop and never
awaited by the caller. A connection whose send fails is dropped.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Hashable, Set

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks who is online and what they are watching."""

    def __init__(self):
        self._users: Dict[Hashable, Set[Any]] = defaultdict(set)
        self._channels: Dict[str, Set[Any]] = defaultdict(set)
        self._pending: Set[asyncio.Task] = set()
        self._closed = False

    @staticmethod
    def task_channel(task_id) -> str:
        return f"task:{task_id}"

    @staticmethod
    def comments_channel(task_id) -> str:
        return f"task:{task_id}:comments"

    def connect(self, user_id, connection) -> None:
        self._users[user_id].add(connection)
        logger.info("WebSocket client connected: %s", user_id)

    def disconnect(self, user_id, connection) -> None:
        connections = self._users.get(user_id)
        if connections is not None:
            connections.discard(connection)
            if not connections:
                self._users.pop(user_id, None)
        for channel in list(self._channels):
            self._leave(channel, connection)
        logger.info("WebSocket client disconnected: %s", user_id)

    def subscribe(self, channel: str, connection) -> None:
        self._channels[channel].add(connection)
        logger.debug("Connection subscribed to %s", channel)

    def unsubscribe(self, channel: str, connection) -> None:
        self._leave(channel, connection)
        logger.debug("Connection unsubscribed from %s", channel)

    def _leave(self, channel: str, connection) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(connection)
        if not members:
            self._channels.pop(channel, None)

    def is_online(self, user_id) -> bool:
        return bool(self._users.get(user_id))

    def push_to_user(self, user_id, event: str, payload: Any) -> int:
        """Schedule ``event`` for every connection of ``user_id``; no-op if offline."""
        return self._push(set(self._users.get(user_id, ())), event, payload)

    def push_to_channel(self, channel: str, event: str, payload: Any) -> int:
        return self._push(set(self._channels.get(channel, ())), event, payload)

    def push_to_task_channel(self, task_id, event: str, payload: Any) -> int:
        return self.push_to_channel(self.task_channel(task_id), event, payload)

    def push_to_comments_channel(self, task_id, event: str, payload: Any) -> int:
        return self.push_to_channel(self.comments_channel(task_id), event, payload)

    def _push(self, connections: Set[Any], event: str, payload: Any) -> int:
        if self._closed or not connections:
            return 0
        message = {"event": event, "data": jsonable_encoder(payload)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop, dropping %s push", event)
            return 0
        for connection in connections:
            task = loop.create_task(self._send(connection, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(connections)

    async def _send(self, connection, message: dict) -> None:
        try:
            await connection.send_json(message)
        except Exception:
            logger.warning("Dropping connection after failed %s push", message["event"], exc_info=True)
            self._forget(connection)

    def _forget(self, connection) -> None:
        for user_id in list(self._users):
            self._users[user_id].discard(connection)
            if not self._users[user_id]:
                self._users.pop(user_id, None)
        for channel in list(self._channels):
            self._leave(channel, connection)

    async def drain(self) -> None:
        """Wait for scheduled pushes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        await self.drain()
        self._users.clear()
        self._channels.clear()
