"""
Application services.

PDF delivery (candidate URLs, rendering fallbacks, diagnostics, downloads)
lives in ``app.services.pdf``.
"""

from app.services.pdf import CandidateResolver, PdfReference, PdfViewer

__all__ = [
    'CandidateResolver',
    'PdfReference',
    'PdfViewer',
]
