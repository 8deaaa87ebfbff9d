"""
Standardized user-facing messages for the application.
All messages use consistent formatting and are lazily translated.
"""

from flask_babel import lazy_gettext as _

# Error messages
ERROR_NOT_FOUND = _("%(item)s not found.")
ERROR_INVALID_INPUT = _("Invalid input provided.")

# Books
BOOK_NOT_FOUND = _("Book not found.")

# PDF delivery
PDF_CONTAINER_UNAVAILABLE = _("PDF container not available.")
PDF_EMBED_FAILED = _("The embedded viewer could not load %(url)s.")
PDF_IFRAME_FAILED = _("The frame viewer could not load %(url)s.")
PDF_NO_CANDIDATES = _("PDF loading failed - no location is known for this document.")
PDF_CANDIDATES_EXHAUSTED = _(
    "PDF could not be displayed from %(count)d location(s). Retry, or download the file instead.")
PDF_REACHABILITY_FAILED = _("Could not reach %(url)s: %(error)s")
PDF_TIMED_OUT = _("PDF is taking too long to load or has encountered a problem.")
PDF_FILE_MISSING = _("PDF file not found on server.")
PDF_STREAM_ERROR = _("Error streaming PDF file.")
PDF_DOWNLOAD_FAILED = _("Unable to download the PDF. Please try again later or check your browser settings.")
