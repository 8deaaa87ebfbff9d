"""
Render surfaces.

A surface is the container the render state machine attaches viewer elements
to. Attaching returns an ``EmbedHandle``; the surface reports the outcome
through the ``on_load`` / ``on_error`` callbacks passed to ``attach``.
Callbacks of a detached handle are never delivered.
"""

import logging
import threading

import requests

from app.services.pdf.errors import ContainerUnavailable

logger = logging.getLogger(__name__)

STRATEGY_EMBED = 'embed'
STRATEGY_IFRAME = 'iframe'

PDF_CONTENT_TYPES = {
    'application/pdf',
    'application/x-pdf',
    'application/acrobat',
}
PDF_MAGIC = b'%PDF-'


class EmbedHandle:
    """A viewer element attached to a surface."""

    def __init__(self, surface, strategy, url, on_load, on_error):
        self.surface = surface
        self.strategy = strategy
        self.url = url
        self._on_load = on_load
        self._on_error = on_error
        self._lock = threading.Lock()
        self._attached = True

    @property
    def attached(self):
        return self._attached

    def detach(self):
        """Remove the element. Detaching twice is a no-op."""
        with self._lock:
            if not self._attached:
                return
            self._attached = False
        self.surface._release(self)

    def loaded(self):
        if self._attached:
            self._on_load()

    def failed(self, reason=None):
        if self._attached:
            self._on_error(reason)

    def __repr__(self):
        state = 'attached' if self._attached else 'detached'
        return f"<EmbedHandle {self.strategy} {self.url} ({state})>"


class RenderSurface:
    """Base surface keeping track of attached handles."""

    def __init__(self, width=None, height=None):
        self.width = width
        self.height = height
        self.available = True
        self._handles = []
        self._lock = threading.Lock()

    @property
    def size(self):
        if self.width is None and self.height is None:
            return None
        return {'width': self.width, 'height': self.height}

    @property
    def attached_count(self):
        with self._lock:
            return len(self._handles)

    def attach(self, strategy, url, on_load, on_error):
        if not self.available:
            raise ContainerUnavailable()
        handle = EmbedHandle(self, strategy, url, on_load, on_error)
        with self._lock:
            self._handles.append(handle)
        self._mount(handle)
        return handle

    def close(self):
        """Remove the container; every attached element goes with it."""
        self.available = False
        with self._lock:
            handles = list(self._handles)
        for handle in handles:
            handle.detach()

    def _release(self, handle):
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)
        self._unmount(handle)

    def _mount(self, handle):
        raise NotImplementedError

    def _unmount(self, handle):
        pass


class HttpProbeSurface(RenderSurface):
    """Headless surface: an element "loads" when its URL can be fetched.

    The embed strategy needs a PDF response (content type or ``%PDF-`` magic);
    the iframe strategy accepts any successful response. Fetches run through
    ``submit`` (a scheduler worker by default).
    """

    def __init__(self, submit, session=None, timeout=10, width=None, height=None):
        super().__init__(width=width, height=height)
        self._submit = submit
        self._session = session or requests
        self.timeout = timeout
        self._responses = {}

    def _mount(self, handle):
        self._submit(lambda: self._fetch(handle))

    def _unmount(self, handle):
        response = self._responses.pop(id(handle), None)
        if response is not None:
            response.close()

    def _fetch(self, handle):
        if not handle.attached:
            return
        try:
            response = self._session.get(handle.url, stream=True, timeout=self.timeout,
                                         headers={'Accept': 'application/pdf, */*'})
        except requests.exceptions.RequestException as e:
            logger.info(f"Probe surface: {handle.strategy} request failed for {handle.url}: {e}")
            handle.failed(str(e))
            return

        self._responses[id(handle)] = response
        try:
            if not response.ok:
                handle.failed(f"HTTP {response.status_code}")
                return

            if handle.strategy == STRATEGY_EMBED and not self._looks_like_pdf(response):
                handle.failed("response is not a PDF document")
                return

            handle.loaded()
        except requests.exceptions.RequestException as e:
            handle.failed(str(e))
        finally:
            if not handle.attached:
                self._responses.pop(id(handle), None)
                response.close()

    @staticmethod
    def _looks_like_pdf(response):
        content_type = response.headers.get('Content-Type', '').split(';', 1)[0].strip().lower()
        if content_type in PDF_CONTENT_TYPES:
            return True
        head = next(response.iter_content(chunk_size=len(PDF_MAGIC)), b'')
        return head.startswith(PDF_MAGIC)
