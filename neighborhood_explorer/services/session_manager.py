# Per-client discovery sessions.
# A new request supersedes any in-flight one for the same session: the older
# task is cancelled and, should it still complete, its result is discarded
# because its generation is no longer current.
# Sessions live for SESSION_COOKIE_MAX_AGE since last use and at most
# SESSION_MAX_COUNT are kept; evicting one releases its markers.

import asyncio
import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional, Tuple

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.models.dto import DiscoveryResult, DiscoverySession, DiscoveryStatus, Neighborhood
from neighborhood_explorer.services.poi_service import POIDiscoveryPipeline
from neighborhood_explorer.services.presentation import PresentationAdapter

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        pipeline: POIDiscoveryPipeline,
        presentation: PresentationAdapter,
        max_sessions: int = settings.SESSION_MAX_COUNT,
        ttl_seconds: Optional[float] = settings.SESSION_COOKIE_MAX_AGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.pipeline = pipeline
        self.presentation = presentation
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # least recently used first
        self._sessions: "OrderedDict[str, DiscoverySession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> DiscoverySession:
        self._evict_expired()
        session = self._sessions.get(session_id)
        if session is None:
            session = DiscoverySession(session_id=session_id)
        self._store(session)
        return session

    async def discover(
        self,
        session_id: str,
        neighborhood: Neighborhood,
        category: str,
        access_token: str,
    ) -> Tuple[DiscoverySession, Optional[DiscoveryResult]]:
        """
        Run discovery for a session and commit the outcome if still current.

        Returns the session as it stands afterwards and the result, or None
        for the result when this request was superseded by a newer one or
        its session was evicted meanwhile. Cancelling the caller's own task
        always propagates.
        """
        session = self.get(session_id).begin(neighborhood.id, category)
        self._store(session)
        generation = session.generation

        previous = self._inflight.get(session_id)
        if previous is not None and not previous.done():
            logger.info(f"Session {session_id}: cancelling in-flight discovery for generation {generation - 1}.")
            previous.cancel()

        task = asyncio.create_task(self.pipeline.discover(neighborhood, category, access_token))
        self._inflight[session_id] = task
        try:
            result = await task
        except asyncio.CancelledError:
            caller = asyncio.current_task()
            if caller is not None and caller.cancelling():
                raise
            current = self._sessions.get(session_id)
            if current is None or not current.is_current(generation):
                logger.info(f"Session {session_id}: generation {generation} superseded.")
                return current or session, None
            raise
        finally:
            if self._inflight.get(session_id) is task:
                del self._inflight[session_id]

        committed = self.commit(session_id, generation, result)
        return committed, (result if committed.committed_generation == generation else None)

    def commit(self, session_id: str, generation: int, result: DiscoveryResult) -> DiscoverySession:
        current = self._sessions.get(session_id)
        if current is None:
            logger.info(f"Session {session_id}: discarding result for evicted session (generation {generation}).")
            return DiscoverySession(session_id=session_id)
        if not current.is_current(generation):
            logger.info(
                f"Session {session_id}: discarding stale result (generation {generation}, current {current.generation})."
            )
            return current

        self.presentation.clear(session_id)
        if result.status == DiscoveryStatus.OK:
            self.presentation.install(session_id, result.pois, result.viewport)

        updated = current.commit(generation, result)
        self._store(updated)
        return updated

    # --- Lifetime ---

    def _store(self, session: DiscoverySession) -> None:
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)
        self._last_seen[session.session_id] = self._clock()
        while len(self._sessions) > self.max_sessions:
            self._evict(next(iter(self._sessions)), "capacity")

    def _evict_expired(self) -> None:
        if self.ttl_seconds is None:
            return
        deadline = self._clock() - self.ttl_seconds
        while self._sessions:
            oldest = next(iter(self._sessions))
            if self._last_seen[oldest] > deadline:
                break
            self._evict(oldest, "expired")

    def _evict(self, session_id: str, reason: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        self.presentation.clear(session_id)
        task = self._inflight.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
        logger.debug(f"Session {session_id} evicted ({reason}).")
