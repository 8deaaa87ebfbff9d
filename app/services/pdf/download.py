"""
Download fallback.

Independent of the render state machine: saves the first candidate (then the
title-derived local copy) with the downloader, and opens the first candidate
in a new browser tab when no downloader is available or every download fails.
"""

import logging
import os
import webbrowser
from dataclasses import dataclass
from typing import Optional

import requests

from app.services.pdf.errors import CandidatesExhausted
from app.services.pdf.references import SOURCE_LOCAL, CandidateList
from app.utils.messages import PDF_DOWNLOAD_FAILED

logger = logging.getLogger(__name__)

METHOD_DOWNLOAD = 'download'
METHOD_NEW_TAB = 'new_tab'


@dataclass
class DownloadOutcome:
    url: str
    method: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self):
        return self.method is not None


class HttpDownloader:
    """Streams a URL to a file in ``dest_dir``."""

    CHUNK_SIZE = 64 * 1024

    def __init__(self, dest_dir, session=None, timeout=30):
        self.dest_dir = dest_dir
        self.session = session or requests
        self.timeout = timeout

    def download(self, url, filename):
        os.makedirs(self.dest_dir, exist_ok=True)
        path = os.path.join(self.dest_dir, os.path.basename(filename) or 'document.pdf')
        partial = path + '.part'

        response = self.session.get(url, stream=True, timeout=self.timeout)
        try:
            response.raise_for_status()
            with open(partial, 'wb') as f:
                for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise
        finally:
            response.close()

        os.replace(partial, path)
        return path


class DownloadFallback:
    def __init__(self, downloader=None, opener=webbrowser.open_new_tab):
        self.downloader = downloader
        self.opener = opener

    def run(self, candidates: CandidateList, filename: str = 'document.pdf') -> DownloadOutcome:
        """
        Download the first candidate, or open it in a new tab.

        When the first candidate cannot be downloaded the title-derived local
        copy is tried next, before falling back to the browser.

        Raises:
            CandidatesExhausted: when there is nothing to download
        """
        first = candidates.first
        if first is None:
            raise CandidatesExhausted(tried=0)

        if not filename.lower().endswith('.pdf'):
            filename = f"{filename}.pdf"

        if self.downloader is not None:
            for candidate in self._download_order(candidates):
                try:
                    path = self.downloader.download(candidate.url, filename)
                    logger.info(f"Download: saved {candidate.url} to {path}")
                    return DownloadOutcome(candidate.url, METHOD_DOWNLOAD, path=path)
                except (requests.exceptions.RequestException, OSError) as e:
                    logger.warning(f"Download: direct download of {candidate.url} failed: {e}")

        url = first.url
        try:
            opened = self.opener(url)
        except webbrowser.Error as e:
            logger.error(f"Download: could not open {url}: {e}")
            opened = False

        if opened is False:
            return DownloadOutcome(url, error=str(PDF_DOWNLOAD_FAILED))

        logger.info(f"Download: opened {url} in a new tab")
        return DownloadOutcome(url, METHOD_NEW_TAB)

    @staticmethod
    def _download_order(candidates):
        order = [candidates.first]
        for candidate in candidates:
            if candidate.source == SOURCE_LOCAL and candidate.url != order[0].url:
                order.append(candidate)
                break
        return order
