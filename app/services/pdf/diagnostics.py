"""
Diagnostic collector.

Probes every candidate URL independently (HEAD, then a ranged GET when the
server does not answer HEAD with success) and combines the results with
environment information and the current render status. Reports are built on
demand, never retried and never stored.
"""

import logging
import platform
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional

import requests

from app.services.pdf.errors import ReachabilityCheckFailed
from app.services.pdf.references import CandidateList, PdfReference

logger = logging.getLogger(__name__)


@dataclass
class Environment:
    """Static facts about where the viewer runs."""
    viewport: Optional[Dict[str, int]] = None
    container: Optional[Dict[str, int]] = None
    online: Optional[bool] = None
    cookies_enabled: Optional[bool] = None
    user_agent: Optional[str] = None
    language: Optional[str] = None
    platform: Optional[str] = None

    @classmethod
    def local(cls, container=None):
        """Environment of the current process (CLI usage)."""
        return cls(
            container=container,
            online=None,
            user_agent=requests.utils.default_user_agent(),
            platform=platform.platform(),
        )


@dataclass
class ReachabilityResult:
    url: str
    source: str
    success: bool
    method: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


@dataclass
class DiagnosticReport:
    timestamp: str
    reference: Optional[PdfReference]
    environment: Environment
    results: List[ReachabilityResult] = field(default_factory=list)
    render_state: Optional[str] = None
    attempt: Optional[dict] = None

    @property
    def reachable(self):
        return [r.url for r in self.results if r.success]

    def to_dict(self):
        return {
            'timestamp': self.timestamp,
            'reference': asdict(self.reference) if self.reference else None,
            'environment': asdict(self.environment),
            'results': [asdict(r) for r in self.results],
            'render_state': self.render_state,
            'attempt': self.attempt,
        }


class DiagnosticCollector:
    """Builds ``DiagnosticReport`` objects for a candidate list."""

    def __init__(self, session=None, timeout=5.0, range_bytes=1024):
        self.session = session or requests
        self.timeout = timeout
        self.range_bytes = range_bytes

    def probe(self, url: str, source: str = '') -> ReachabilityResult:
        """
        Check that ``url`` exists without downloading it.

        Args:
            url: Candidate URL
            source: Candidate label copied into the result

        Returns:
            ReachabilityResult; failures carry the error text
        """
        if not url.lower().startswith(('http://', 'https://')):
            logger.info(f"Diagnostics: not probing {url!r}, no trusted absolute address")
            error = ReachabilityCheckFailed(url, 'not an absolute http(s) URL')
            return ReachabilityResult(url, source, False, error=error.message)

        try:
            response = self.session.head(url, timeout=self.timeout, allow_redirects=True,
                                         headers={'Accept': 'application/pdf'})
            if response.ok:
                return ReachabilityResult(url, source, True, 'HEAD', response.status_code)

            logger.debug(f"Diagnostics: HEAD {url} returned {response.status_code}, trying GET")
            response = self.session.get(
                url,
                timeout=self.timeout,
                stream=True,
                headers={
                    'Accept': 'application/pdf',
                    'Range': f'bytes=0-{self.range_bytes - 1}',
                },
            )
            try:
                if response.ok:
                    return ReachabilityResult(url, source, True, 'GET', response.status_code)
                error = ReachabilityCheckFailed(url, f"HTTP {response.status_code}")
                return ReachabilityResult(url, source, False, 'GET', response.status_code, error.message)
            finally:
                response.close()

        except requests.exceptions.Timeout:
            logger.warning(f"Diagnostics: timeout probing {url}")
            return ReachabilityResult(url, source, False, error=ReachabilityCheckFailed(url, 'timed out').message)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Diagnostics: error probing {url}: {e}")
            return ReachabilityResult(url, source, False, error=ReachabilityCheckFailed(url, str(e)).message)

    def collect(
        self,
        candidates: CandidateList,
        environment: Optional[Environment] = None,
        reference: Optional[PdfReference] = None,
        selector=None,
    ) -> DiagnosticReport:
        """Probe every candidate and assemble the report."""
        report = DiagnosticReport(
            timestamp=datetime.utcnow().isoformat() + 'Z',
            reference=reference,
            environment=environment or Environment(),
        )

        for candidate in candidates:
            report.results.append(self.probe(candidate.url, candidate.source))

        if selector is not None:
            report.render_state = selector.state.value
            if selector.attempt is not None:
                report.attempt = selector.attempt.to_dict()

        logger.info(
            f"Diagnostics: {len(report.reachable)}/{len(report.results)} candidate(s) reachable")
        return report
