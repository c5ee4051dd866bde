"""
Debounce and deduplication of analysis work.

Edits to a document arm a single debounce timer; when it fires, a full pass
rescans the text and requests enhancements for new or changed prompt lines.
At most one enhancement request per (document, line) is in flight. A full
pass cancels requests whose prompt text no longer matches the line, so a
superseded request never overwrites newer results.

Everything here runs on one asyncio event loop; the only suspension point
is the remote call inside the enhancer.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from .config import AnalyzerSettings
from .diagnostics import Diagnostic, DiagnosticCode
from .documents import Document
from .enhancer import EnhancementError, PromptEnhancer
from .prompts import extract_prompt, extract_prompts
from .session import DocumentSession, InFlightRequest, SessionRegistry
from .store import (
    DiagnosticStore,
    enhanced_diagnostic,
    failed_diagnostic,
    loading_diagnostic,
    prompt_line_range,
)


class AnalysisScheduler:
    """
    Coordinates debounced full passes and per-line enhancement requests.

    Usage:
        scheduler = AnalysisScheduler(registry, store, PromptEnhancer())
        scheduler.on_document_changed(document)   # from an edit event
    """

    def __init__(
        self,
        registry: SessionRegistry,
        store: DiagnosticStore,
        enhancer: PromptEnhancer,
        settings: Optional[AnalyzerSettings] = None
    ):
        self.registry = registry
        self.store = store
        self.enhancer = enhancer
        self.settings = settings or AnalyzerSettings()
        self.logger = logging.getLogger('scheduler')

    def on_document_changed(
        self,
        document: Document,
        delay: Optional[float] = None
    ) -> DocumentSession:
        """Restart the debounce timer for a document."""
        session = self.registry.open(document)
        session.cancel_debounce()

        if delay is None:
            delay = self.settings.debounce_seconds
        loop = asyncio.get_running_loop()
        session.debounce_handle = loop.call_later(delay, self._on_debounce_fired, session)
        return session

    def _on_debounce_fired(self, session: DocumentSession) -> None:
        session.debounce_handle = None
        if session.closed:
            return
        try:
            self.run_full_pass(session.document)
        except Exception:
            self.logger.exception(f"Full pass failed for {session.uri}")

    def run_full_pass(self, document: Document) -> List[Diagnostic]:
        """
        Rescan a document and refresh enhancement requests.

        Returns:
            The diagnostics published for the document
        """
        session = self.registry.open(document)
        security = self.store.scanner(document.text)
        prompts = extract_prompts(document.text, document.language_id)
        current = {entry.line: entry.prompt for entry in prompts}

        for line, request in list(session.in_flight.items()):
            if current.get(line) != request.prompt:
                self.logger.debug(f"Cancelling superseded request for {document.uri}:{line}")
                session.cancel_in_flight(line)

        stored = []
        pending = []
        for line, prompt in prompts:
            existing = session.line_diagnostic(line)
            if (
                existing is not None
                and existing.code is DiagnosticCode.ENHANCED_PROMPT
                and session.resolved_prompts.get(line) == prompt
            ):
                stored.append(replace(existing, range=prompt_line_range(document, line)))
                continue

            session.resolved_prompts.pop(line, None)
            in_flight = session.in_flight.get(line)
            if in_flight is not None and existing is not None:
                # Same prompt still resolving; keep what the user already sees
                stored.append(existing)
            else:
                stored.append(loading_diagnostic(document, line))
            pending.append((line, prompt))

        self.store.replace_all_for_document(document, stored)
        for line, prompt in pending:
            self.request_enhancement(document, line, prompt)

        return self.store.republish(document, security)

    def request_enhancement(
        self,
        document: Document,
        line: int,
        prompt: str
    ) -> Optional[asyncio.Task]:
        """
        Start an enhancement request for a prompt line.

        Returns:
            The new task, or None if a request for this line is in flight
        """
        session = self.registry.open(document)
        if line in session.in_flight:
            self.logger.debug(f"Enhancement already in flight for {document.uri}:{line}")
            return None

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._enhance_line(session, line, prompt))
        session.in_flight[line] = InFlightRequest(line, prompt, task)
        return task

    async def _enhance_line(self, session: DocumentSession, line: int, prompt: str) -> None:
        this_task = asyncio.current_task()
        try:
            enhanced = None
            reason = ''
            try:
                enhanced = await self.enhancer.enhance(prompt)
            except EnhancementError as e:
                self.logger.error(f"Enhancement API failed: {e}")
                reason = str(e)
            except Exception as e:
                self.logger.exception("Unexpected error during enhancement")
                reason = str(e) or e.__class__.__name__

            if session.closed:
                return

            document = session.document
            if extract_prompt(document.line_at(line)) != prompt:
                self.logger.debug(f"Discarding stale enhancement for {session.uri}:{line}")
                return

            if enhanced is not None:
                diagnostic = enhanced_diagnostic(document, line, enhanced)
                session.resolved_prompts[line] = prompt
            else:
                diagnostic = failed_diagnostic(document, line, reason)
                session.resolved_prompts.pop(line, None)

            self.store.upsert_line_diagnostic(document, line, diagnostic)
            self.store.republish(document)
        finally:
            request = session.in_flight.get(line)
            if request is not None and request.task is this_task:
                del session.in_flight[line]

    async def wait_idle(self, uri: Optional[str] = None) -> None:
        """Wait until no enhancement request is in flight."""
        while True:
            if uri is None:
                sessions = list(self.registry)
            else:
                session = self.registry.get(uri)
                sessions = [session] if session else []

            tasks = [task for session in sessions for task in session.in_flight_tasks()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
