# Hand-off point between discovery and whatever draws markers and cards.

import logging
from typing import Dict, List, Protocol, Tuple

from neighborhood_explorer.models.dto import POI, Bounds

logger = logging.getLogger(__name__)


class PresentationAdapter(Protocol):
    """Marker lifecycle owner. `clear` is always called before `install`."""

    def clear(self, session_id: str) -> None: ...
    def install(self, session_id: str, pois: List[POI], viewport: Bounds) -> None: ...


class InMemoryPresentation:
    """Keeps the installed marker set per session, replace-only."""

    def __init__(self):
        self._markers: Dict[str, Tuple[List[POI], Bounds]] = {}

    def clear(self, session_id: str) -> None:
        released = self._markers.pop(session_id, None)
        if released is not None:
            logger.debug(f"Released {len(released[0])} markers for session {session_id}.")

    def install(self, session_id: str, pois: List[POI], viewport: Bounds) -> None:
        if session_id in self._markers:
            raise RuntimeError(f"Markers for session {session_id} must be cleared before install")
        self._markers[session_id] = (list(pois), viewport)

    def markers(self, session_id: str) -> List[POI]:
        installed = self._markers.get(session_id)
        return list(installed[0]) if installed else []
