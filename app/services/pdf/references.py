"""
PDF URL resolver.

Turns a book's stored PDF reference into the ordered list of URLs the viewer
should try:

1. the primary URL (relative paths are made absolute on the page origin)
2. the streaming endpoint derived from the book id
3. a filename guess derived from the book title

Usage:
    resolver = CandidateResolver("https://site.test")
    candidates = resolver.resolve(PdfReference("/files/a.pdf", book_id="42"))
"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
from urllib.parse import quote, urljoin

SOURCE_PRIMARY = 'primary'
SOURCE_STREAMING = 'streaming'
SOURCE_LOCAL = 'local'

DEFAULT_STREAM_PATH = '/api/books/pdf-stream/{book_id}'
DEFAULT_LOCAL_PREFIX = '/books/'

_WHITESPACE_RE = re.compile(r'\s+')


@dataclass(frozen=True)
class PdfReference:
    """Stored pointer to a document."""
    primary_url: str
    book_id: Optional[str] = None
    book_title: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    url: str
    source: str


@dataclass(frozen=True)
class CandidateList:
    """Ordered candidate URLs; order is priority, not confidence."""
    entries: Tuple[Candidate, ...] = ()

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def __getitem__(self, index):
        return self.entries[index]

    def __bool__(self):
        return bool(self.entries)

    @property
    def urls(self) -> Tuple[str, ...]:
        return tuple(c.url for c in self.entries)

    @property
    def first(self) -> Optional[Candidate]:
        return self.entries[0] if self.entries else None

    def to_list(self):
        return [{'url': c.url, 'source': c.source} for c in self.entries]


def absolutize(url: str, origin: str) -> str:
    """Rewrite a root-relative URL onto ``origin``; pass anything else through."""
    if url.startswith('/') and origin:
        return urljoin(origin.rstrip('/') + '/', url)
    return url


def local_filename(title: str) -> str:
    """Filename guess for a title: whitespace runs become ``_``, lower-cased."""
    return _WHITESPACE_RE.sub('_', title).lower() + '.pdf'


class CandidateResolver:
    """Builds a ``CandidateList`` from a ``PdfReference``. Has no side effects."""

    def __init__(
        self,
        origin: str,
        api_base_url: Optional[str] = None,
        stream_path: str = DEFAULT_STREAM_PATH,
        local_prefix: str = DEFAULT_LOCAL_PREFIX,
    ):
        self.origin = (origin or '').rstrip('/')
        self.api_base_url = (api_base_url or self.origin).rstrip('/')
        self.stream_path = stream_path
        self.local_prefix = local_prefix

    @classmethod
    def from_config(cls, config, origin: str) -> 'CandidateResolver':
        """Create a resolver from a Flask config mapping."""
        origin = config.get('PUBLIC_ORIGIN') or origin
        return cls(
            origin,
            api_base_url=config.get('API_BASE_URL'),
            stream_path=config.get('PDF_STREAM_PATH', DEFAULT_STREAM_PATH),
            local_prefix=config.get('LOCAL_PDF_PREFIX', DEFAULT_LOCAL_PREFIX),
        )

    def streaming_url(self, book_id: str) -> str:
        path = self.stream_path.format(book_id=quote(str(book_id), safe=''))
        return absolutize(path, self.api_base_url)

    def local_fallback_url(self, title: str) -> str:
        prefix = self.local_prefix if self.local_prefix.endswith('/') else self.local_prefix + '/'
        return absolutize(prefix + quote(local_filename(title)), self.origin)

    def resolve(self, reference: PdfReference) -> CandidateList:
        found = []

        primary = (reference.primary_url or '').strip()
        if primary:
            found.append(Candidate(absolutize(primary, self.origin), SOURCE_PRIMARY))

        if reference.book_id:
            found.append(Candidate(self.streaming_url(reference.book_id), SOURCE_STREAMING))

        if reference.book_title and reference.book_title.strip():
            found.append(Candidate(self.local_fallback_url(reference.book_title), SOURCE_LOCAL))

        seen = set()
        entries = []
        for candidate in found:
            if candidate.url in seen:
                continue
            seen.add(candidate.url)
            entries.append(candidate)
        return CandidateList(tuple(entries))


def resolve_candidates(reference: PdfReference, origin: str, **kwargs) -> CandidateList:
    """Shortcut for ``CandidateResolver(origin, **kwargs).resolve(reference)``."""
    return CandidateResolver(origin, **kwargs).resolve(reference)
