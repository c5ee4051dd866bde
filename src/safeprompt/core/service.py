"""
SafePrompt service: the object a host talks to.

The host forwards document events (open, change, save, close), the
"run scan" command and quick-fix requests; the service owns the session
registry, the diagnostic store and the scheduler.
"""

import logging
from typing import List, Optional, Sequence

from .config import AnalyzerSettings
from .diagnostics import Diagnostic
from .documents import Document
from .enhancer import PromptEnhancer
from .host import DiagnosticPublisher, InMemoryDiagnosticCollection, LoggingNotifier, Notifier
from .quickfix import RUN_SCAN_COMMAND, CodeAction, provide_code_actions
from .scheduler import AnalysisScheduler
from .session import SessionRegistry
from .store import DiagnosticStore


NO_ACTIVE_DOCUMENT_MESSAGE = 'Open a supported file to scan.'


class SafePromptService:
    """
    Wires the analysis pipeline to a host.

    Usage:
        service = SafePromptService(publisher=collection)
        service.activate(active_document)
        service.on_change(document)        # on every edit
        await service.aclose()             # on shutdown
    """

    RUN_SCAN_COMMAND = RUN_SCAN_COMMAND

    def __init__(
        self,
        publisher: Optional[DiagnosticPublisher] = None,
        notifier: Optional[Notifier] = None,
        enhancer: Optional[PromptEnhancer] = None,
        settings: Optional[AnalyzerSettings] = None
    ):
        self.settings = settings or AnalyzerSettings()
        self.publisher = publisher if publisher is not None else InMemoryDiagnosticCollection()
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.enhancer = enhancer or PromptEnhancer(self.settings)
        self.registry = SessionRegistry()
        self.store = DiagnosticStore(self.registry, self.publisher)
        self.scheduler = AnalysisScheduler(self.registry, self.store, self.enhancer, self.settings)
        self.logger = logging.getLogger('safeprompt.service')

    def activate(self, active_document: Optional[Document] = None) -> None:
        """Scan the active document right away, if there is one."""
        if active_document is not None:
            self.scheduler.run_full_pass(active_document)
        self.logger.info('SafePrompt activated')

    # Host document events

    def on_open(self, document: Document) -> None:
        self.scheduler.on_document_changed(document)

    def on_change(self, document: Document) -> None:
        self.scheduler.on_document_changed(document)

    def on_save(self, document: Document) -> None:
        self.scheduler.on_document_changed(document)

    def on_close(self, uri: str) -> None:
        """Drop all state for a closed document and withdraw its diagnostics."""
        self.registry.close(uri)
        self.publisher.delete(uri)

    # Commands

    def run_scan(self, active_document: Optional[Document]) -> Optional[List[Diagnostic]]:
        """
        Run a full scan of the active document.

        Returns:
            Published diagnostics, or None when no document is active
        """
        if active_document is None:
            self.notifier.show_information(NO_ACTIVE_DOCUMENT_MESSAGE)
            return None
        session = self.registry.get(active_document.uri)
        if session is not None:
            session.cancel_debounce()
        return self.scheduler.run_full_pass(active_document)

    def execute_command(self, command: str, active_document: Optional[Document] = None):
        if command == self.RUN_SCAN_COMMAND:
            return self.run_scan(active_document)
        raise ValueError(f"Unknown command: {command}")

    def provide_code_actions(
        self,
        document: Document,
        diagnostics: Sequence[Diagnostic]
    ) -> List[CodeAction]:
        return provide_code_actions(document, diagnostics)

    async def wait_idle(self, uri: Optional[str] = None) -> None:
        await self.scheduler.wait_idle(uri)

    async def aclose(self) -> None:
        """Cancel pending work, clear diagnostics and close the client."""
        self.registry.close_all()
        self.publisher.clear()
        await self.enhancer.aclose()
