"""
Host collaborators.

SafePrompt does not talk to an editor directly. The host hands it a
diagnostic publisher and a notifier; the in-memory implementations below are
used by the CLI, the REST API and the tests.
"""

import logging
from typing import Dict, List, Protocol, Sequence, Tuple

from .diagnostics import Diagnostic, DIAGNOSTIC_SOURCE


class DiagnosticPublisher(Protocol):
    """Labelled diagnostic collection owned by the host."""

    def set(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None: ...

    def delete(self, uri: str) -> None: ...

    def clear(self) -> None: ...


class Notifier(Protocol):
    """Shows short messages to the user."""

    def show_information(self, message: str) -> None: ...


class InMemoryDiagnosticCollection:
    """Diagnostic collection that keeps the latest set per document."""

    def __init__(self, name: str = DIAGNOSTIC_SOURCE):
        self.name = name
        self._diagnostics: Dict[str, List[Diagnostic]] = {}
        self.history: List[Tuple[str, List[Diagnostic]]] = []

    def set(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        published = list(diagnostics)
        self._diagnostics[uri] = published
        self.history.append((uri, published))

    def get(self, uri: str) -> List[Diagnostic]:
        return list(self._diagnostics.get(uri, []))

    def delete(self, uri: str) -> None:
        self._diagnostics.pop(uri, None)

    def clear(self) -> None:
        self._diagnostics.clear()

    def __contains__(self, uri: str) -> bool:
        return uri in self._diagnostics

    def uris(self) -> List[str]:
        return list(self._diagnostics)


class LoggingNotifier:
    """Notifier that writes messages to the log and remembers them."""

    def __init__(self):
        self.messages: List[str] = []
        self.logger = logging.getLogger('notifier')

    def show_information(self, message: str) -> None:
        self.messages.append(message)
        self.logger.info(message)
