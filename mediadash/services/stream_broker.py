"""
Live Log Stream Broker

Each subscriber gets a StreamSession: an acknowledgement on connect, then a
periodic task that queries the newest entries and pushes an envelope every
tick. A failed tick is pushed as an error event and the session carries on;
only disconnect (or a send that fails because the connection is gone) ends
the periodic task.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from mediadash.core.logger import get_logger
from mediadash.models.log_entry import LogEntry

logger = get_logger(__name__)

Send = Callable[[Dict[str, Any]], Awaitable[None]]
EntryDecorator = Callable[[List[LogEntry]], List[LogEntry]]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StreamSession:
    def __init__(self, send: Send, query, service_id: Optional[int] = None,
                 facility: Optional[str] = None, level: Optional[str] = None,
                 interval_seconds: float = 5, query_limit: int = 50, batch_size: int = 10,
                 decorators: Sequence[EntryDecorator] = (),
                 on_close: Optional[Callable[["StreamSession"], None]] = None):
        self.id = uuid.uuid4().hex
        self.send = send
        self.query = query
        self.service_id = service_id
        self.facility = facility
        self.level = level
        self.interval_seconds = interval_seconds
        self.query_limit = query_limit
        self.batch_size = batch_size
        self.decorators = list(decorators)
        self._on_close = on_close
        self._task: Optional[asyncio.Task] = None
        self.closed = False

    def fetch_logs(self) -> List[LogEntry]:
        if self.service_id is not None:
            return self.query.get_service_logs(
                self.service_id, facility=self.facility, level=self.level, limit=self.query_limit
            )
        return self.query.get_all_logs(level=self.level, limit=self.query_limit)

    def build_event(self) -> Dict[str, Any]:
        """Build the envelope for one tick; failures become an error event."""
        try:
            logs = self.fetch_logs()
            for decorate in self.decorators:
                logs = decorate(logs)
            return {
                'type': 'logs',
                'timestamp': _now_iso(),
                'logs': [log.to_dict() for log in logs[:self.batch_size]],
            }
        except Exception as e:
            logger.error(
                f"Log stream tick failed for session {self.id}: {e}",
                extra={'component': 'stream_broker', 'session_id': self.id}
            )
            return {'type': 'error', 'message': str(e), 'timestamp': _now_iso()}

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                event = self.build_event()
                try:
                    await self.send(event)
                except Exception as e:
                    logger.info(
                        f"Log stream subscriber gone for session {self.id}: {e}",
                        extra={'component': 'stream_broker', 'session_id': self.id}
                    )
                    return
        finally:
            self.closed = True
            if self._on_close is not None:
                self._on_close(self)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._run(), name=f"log-stream-{self.id}"
            )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def close(self) -> None:
        self.closed = True
        task = self._task
        if task is None or task.done():
            if self._on_close is not None:
                self._on_close(self)
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


class StreamBroker:
    """Creates and tracks live stream sessions."""

    def __init__(self, query, interval_seconds: float = 5, query_limit: int = 50,
                 batch_size: int = 10, decorators: Sequence[EntryDecorator] = ()):
        self.query = query
        self.interval_seconds = interval_seconds
        self.query_limit = query_limit
        self.batch_size = batch_size
        self.decorators = list(decorators)
        self.sessions: Dict[str, StreamSession] = {}

    @property
    def active_sessions(self) -> int:
        return len(self.sessions)

    def _forget(self, session: StreamSession) -> None:
        self.sessions.pop(session.id, None)

    async def connect(self, send: Send, service_id: Optional[int] = None,
                      facility: Optional[str] = None, level: Optional[str] = None) -> StreamSession:
        session = StreamSession(
            send, self.query,
            service_id=service_id,
            facility=facility,
            level=level,
            interval_seconds=self.interval_seconds,
            query_limit=self.query_limit,
            batch_size=self.batch_size,
            decorators=self.decorators,
            on_close=self._forget,
        )
        await send({'type': 'connected', 'message': 'Log stream connected', 'timestamp': _now_iso()})
        self.sessions[session.id] = session
        session.start()
        logger.info(
            f"Log stream session {session.id} connected",
            extra={'component': 'stream_broker', 'session_id': session.id,
                   'active_sessions': self.active_sessions}
        )
        return session

    async def disconnect(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        await session.close()
        logger.info(
            f"Log stream session {session_id} disconnected",
            extra={'component': 'stream_broker', 'session_id': session_id,
                   'active_sessions': self.active_sessions}
        )
        return True

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            await self.disconnect(session_id)
