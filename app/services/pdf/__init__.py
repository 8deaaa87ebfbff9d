"""
PDF delivery fallback chain.

Resolves candidate URLs for a book's PDF, renders the first one that works
(native embed, then iframe), diagnoses reachability and offers a download.
"""

from app.services.pdf.references import (
    PdfReference, Candidate, CandidateList, CandidateResolver, resolve_candidates,
)
from app.services.pdf.errors import (
    PdfDeliveryError, ContainerUnavailable, EmbedFailed, IframeFailed,
    CandidatesExhausted, ReachabilityCheckFailed,
)
from app.services.pdf.selector import RenderStrategySelector, RenderState, AttemptStatus
from app.services.pdf.surfaces import RenderSurface, HttpProbeSurface
from app.services.pdf.timers import CancellationToken, SchedulerTimer
from app.services.pdf.diagnostics import DiagnosticCollector, DiagnosticReport, Environment
from app.services.pdf.download import DownloadFallback, HttpDownloader
from app.services.pdf.viewer import PdfViewer

__all__ = [
    'PdfReference',
    'Candidate',
    'CandidateList',
    'CandidateResolver',
    'resolve_candidates',
    'PdfDeliveryError',
    'ContainerUnavailable',
    'EmbedFailed',
    'IframeFailed',
    'CandidatesExhausted',
    'ReachabilityCheckFailed',
    'RenderStrategySelector',
    'RenderState',
    'AttemptStatus',
    'RenderSurface',
    'HttpProbeSurface',
    'CancellationToken',
    'SchedulerTimer',
    'DiagnosticCollector',
    'DiagnosticReport',
    'Environment',
    'DownloadFallback',
    'HttpDownloader',
    'PdfViewer',
]
