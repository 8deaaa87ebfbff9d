"""
Viewer host.

One ``PdfViewer`` per open view: it owns the candidate list and the current
render selector, and exposes the user-facing operations (retry, diagnose,
download). Nothing is shared between viewer instances.
"""

import logging

from app.services.pdf.diagnostics import DiagnosticCollector
from app.services.pdf.download import DownloadFallback
from app.services.pdf.selector import (
    DEFAULT_EMBED_TIMEOUT, DEFAULT_IFRAME_TIMEOUT, RenderState, RenderStrategySelector,
)

logger = logging.getLogger(__name__)


class PdfViewer:
    def __init__(
        self,
        reference,
        resolver,
        surface,
        timer,
        collector=None,
        download=None,
        embed_timeout=DEFAULT_EMBED_TIMEOUT,
        iframe_timeout=DEFAULT_IFRAME_TIMEOUT,
        listener=None,
    ):
        self.reference = reference
        self.resolver = resolver
        self.surface = surface
        self.timer = timer
        self.collector = collector or DiagnosticCollector()
        self.download_fallback = download or DownloadFallback()
        self.embed_timeout = embed_timeout
        self.iframe_timeout = iframe_timeout
        self.listener = listener

        self.candidates = None
        self.selector = None

    @property
    def state(self):
        return self.selector.state if self.selector is not None else RenderState.IDLE

    def open(self):
        """Resolve the candidates and start rendering from scratch."""
        self.close()
        self.candidates = self.resolver.resolve(self.reference)
        logger.debug(f"Viewer: {len(self.candidates)} candidate(s) for {self.reference.primary_url!r}")

        self.selector = RenderStrategySelector(
            self.candidates,
            self.surface,
            self.timer,
            embed_timeout=self.embed_timeout,
            iframe_timeout=self.iframe_timeout,
        )
        if self.listener is not None:
            self.selector.subscribe(self.listener)
        self.selector.start()
        return self.selector

    def retry(self):
        return self.open()

    def close(self):
        if self.selector is not None:
            self.selector.cancel()

    def diagnose(self, environment=None):
        candidates = self.candidates
        if candidates is None:
            candidates = self.resolver.resolve(self.reference)
        return self.collector.collect(
            candidates,
            environment=environment,
            reference=self.reference,
            selector=self.selector,
        )

    def download(self, filename=None):
        candidates = self.candidates
        if candidates is None:
            candidates = self.resolver.resolve(self.reference)
        return self.download_fallback.run(candidates, filename or self.reference.book_title or 'document')
