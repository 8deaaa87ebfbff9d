"""Failure taxonomy of the PDF delivery chain.

Only ``ContainerUnavailable`` and ``CandidatesExhausted`` are shown to the
user; the others are logged and drive the render state machine.
"""

from app.utils.messages import (
    PDF_CONTAINER_UNAVAILABLE, PDF_EMBED_FAILED, PDF_IFRAME_FAILED,
    PDF_NO_CANDIDATES, PDF_CANDIDATES_EXHAUSTED, PDF_REACHABILITY_FAILED,
)


class PdfDeliveryError(Exception):
    """Base class for PDF delivery failures."""

    user_visible = False

    def __init__(self, message, url=None):
        super().__init__(str(message))
        self.message = str(message)
        self.url = url


class ContainerUnavailable(PdfDeliveryError):
    user_visible = True

    def __init__(self, message=None):
        super().__init__(message or PDF_CONTAINER_UNAVAILABLE)


class EmbedFailed(PdfDeliveryError):
    def __init__(self, url, reason=None):
        super().__init__(PDF_EMBED_FAILED % {'url': url}, url=url)
        self.reason = reason


class IframeFailed(PdfDeliveryError):
    def __init__(self, url, reason=None):
        super().__init__(PDF_IFRAME_FAILED % {'url': url}, url=url)
        self.reason = reason


class CandidatesExhausted(PdfDeliveryError):
    user_visible = True

    def __init__(self, tried=0):
        if tried:
            message = PDF_CANDIDATES_EXHAUSTED % {'count': tried}
        else:
            message = PDF_NO_CANDIDATES
        super().__init__(message)
        self.tried = tried


class ReachabilityCheckFailed(PdfDeliveryError):
    def __init__(self, url, error):
        super().__init__(PDF_REACHABILITY_FAILED % {'url': url, 'error': error}, url=url)
        self.error = error
