"""
Per-document analysis state.

Each open document gets a DocumentSession holding its debounce timer, its
in-flight enhancement requests and the enhancement diagnostics shown for its
prompt lines. Sessions are owned by a SessionRegistry; closing a document
cancels its pending work and drops its state.
"""

import asyncio
import logging
from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass

from .diagnostics import Diagnostic
from .documents import Document


DOC_TIMER_KEY = 'docTimer'
INFLIGHT_KEY_PREFIX = 'inflight_'


@dataclass
class InFlightRequest:
    """An enhancement request dispatched for one line."""
    line: int
    prompt: str
    task: asyncio.Task

    def cancel(self) -> bool:
        if self.task.done():
            return False
        return self.task.cancel()


class DocumentSession:
    """Mutable analysis state for one document."""

    def __init__(self, document: Document):
        self.uri = document.uri
        self.document = document
        self.debounce_handle: Optional[asyncio.TimerHandle] = None
        self.in_flight: Dict[int, InFlightRequest] = {}
        self.enhanced_diagnostics: List[Diagnostic] = []
        # line -> prompt text behind the stored successful enhancement
        self.resolved_prompts: Dict[int, str] = {}
        self.closed = False

    @property
    def timers(self) -> Dict[str, bool]:
        """Active timer keys: ``docTimer`` and ``inflight_<line>``."""
        active = {}
        if self.debounce_handle is not None and not self.debounce_handle.cancelled():
            active[DOC_TIMER_KEY] = True
        for line in sorted(self.in_flight):
            active[f"{INFLIGHT_KEY_PREFIX}{line}"] = True
        return active

    def update_document(self, document: Document) -> None:
        self.document = document

    def line_diagnostic(self, line: int) -> Optional[Diagnostic]:
        for diagnostic in self.enhanced_diagnostics:
            if diagnostic.line == line:
                return diagnostic
        return None

    def cancel_debounce(self) -> bool:
        """Cancel the pending debounce timer. Returns True if one was armed."""
        handle = self.debounce_handle
        self.debounce_handle = None
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_in_flight(self, line: Optional[int] = None) -> int:
        """
        Cancel in-flight requests for one line, or for every line.

        Returns:
            Number of requests cancelled
        """
        lines = list(self.in_flight) if line is None else [line]
        cancelled = 0
        for key in lines:
            request = self.in_flight.pop(key, None)
            if request is not None and request.cancel():
                cancelled += 1
        return cancelled

    def in_flight_tasks(self) -> List[asyncio.Task]:
        return [request.task for request in self.in_flight.values()]

    def close(self) -> None:
        self.cancel_debounce()
        self.cancel_in_flight()
        self.enhanced_diagnostics = []
        self.resolved_prompts.clear()
        self.closed = True

    def to_dict(self):
        return {
            "uri": self.uri,
            "version": self.document.version,
            "timers": self.timers,
            "enhanced_diagnostics": [d.to_dict() for d in self.enhanced_diagnostics],
        }


class SessionRegistry:
    """Owns the DocumentSession for every known document."""

    def __init__(self):
        self._sessions: Dict[str, DocumentSession] = {}
        self.logger = logging.getLogger('sessions')

    def get(self, uri: str) -> Optional[DocumentSession]:
        return self._sessions.get(uri)

    def open(self, document: Document) -> DocumentSession:
        """Return the session for a document, creating it on first use."""
        session = self._sessions.get(document.uri)
        if session is None:
            session = DocumentSession(document)
            self._sessions[document.uri] = session
            self.logger.debug(f"Opened session for {document.uri}")
        else:
            session.update_document(document)
        return session

    def close(self, uri: str) -> Optional[DocumentSession]:
        """Cancel pending work for a document and forget its state."""
        session = self._sessions.pop(uri, None)
        if session is not None:
            session.close()
            self.logger.debug(f"Closed session for {uri}")
        return session

    def close_all(self) -> None:
        for uri in list(self._sessions):
            self.close(uri)

    def __contains__(self, uri: str) -> bool:
        return uri in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[DocumentSession]:
        return iter(list(self._sessions.values()))
