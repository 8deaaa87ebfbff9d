import logging

from flask import Blueprint, current_app, jsonify, redirect, request, send_file
from werkzeug.sansio.utils import host_is_trusted

from app import db
from app.models import Book
from app.services.pdf import CandidateResolver, DiagnosticCollector, Environment
from app.utils.messages import BOOK_NOT_FOUND, PDF_FILE_MISSING, PDF_NO_CANDIDATES, PDF_STREAM_ERROR

logger = logging.getLogger(__name__)

bp = Blueprint("books", __name__)


def _get_book(book_id):
    return db.session.get(Book, book_id)


def _not_found(message=BOOK_NOT_FOUND):
    return jsonify({'error': str(message)}), 404


def _request_origin():
    """The request's own origin, or None when its Host header is not trusted."""
    if host_is_trusted(request.host, current_app.config.get('PDF_TRUSTED_HOSTS') or []):
        return request.host_url
    logger.warning(f"Untrusted host {request.host!r}; leaving relative PDF URLs unresolved")
    return None


def _resolver():
    config = current_app.config
    origin = None if config.get('PUBLIC_ORIGIN') else _request_origin()
    return CandidateResolver.from_config(config, origin)


def _dimensions(width_arg, height_arg):
    width = request.args.get(width_arg, type=int)
    height = request.args.get(height_arg, type=int)
    if width is None and height is None:
        return None
    return {'width': width, 'height': height}


def _flag(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ('1', 'true', 'yes', 'on')


def _public_root():
    return current_app.config['PDF_PUBLIC_ROOT']


@bp.route("/api/books")
def book_list():
    query = Book.query
    title_filter = request.args.get('title')
    if title_filter:
        query = query.filter(Book.title.ilike(f"%{title_filter}%"))
    books = query.order_by(Book.title.asc()).all()
    return jsonify({'books': [book.to_dict() for book in books]})


@bp.route("/api/books/<int:book_id>")
def book_detail(book_id):
    book = _get_book(book_id)
    if book is None:
        return _not_found()
    return jsonify(book.to_dict())


@bp.route("/api/books/<int:book_id>/pdf-candidates")
def pdf_candidates(book_id):
    book = _get_book(book_id)
    if book is None:
        return _not_found()
    candidates = _resolver().resolve(book.pdf_reference())
    return jsonify({'book_id': book.id, 'candidates': candidates.to_list()})


@bp.route("/api/books/pdf-stream/<int:book_id>")
def pdf_stream(book_id):
    book = _get_book(book_id)
    if book is None:
        return _not_found()

    if book.is_remote:
        return redirect(book.pdf_url)

    path = book.local_pdf_path(_public_root())
    if path is None:
        logger.warning(f"PDF stream: file for book {book.id} not found ({book.pdf_url})")
        return _not_found(PDF_FILE_MISSING)

    try:
        response = send_file(
            path,
            mimetype='application/pdf',
            download_name=book.download_name(),
            conditional=True,
        )
    except OSError as e:
        logger.error(f"PDF stream: error streaming book {book.id}: {e}")
        return jsonify({'error': str(PDF_STREAM_ERROR)}), 500

    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Headers'] = 'Origin, X-Requested-With, Content-Type, Accept, Range'
    return response


@bp.route("/api/books/<int:book_id>/pdf-diagnostics")
def pdf_diagnostics(book_id):
    book = _get_book(book_id)
    if book is None:
        return _not_found()

    reference = book.pdf_reference()
    candidates = _resolver().resolve(reference)
    environment = Environment(
        viewport=_dimensions('vw', 'vh'),
        container=_dimensions('cw', 'ch'),
        online=_flag('online'),
        cookies_enabled=_flag('cookies'),
        user_agent=request.headers.get('User-Agent'),
        language=request.accept_languages.best,
        platform=request.args.get('platform'),
    )
    collector = DiagnosticCollector(
        timeout=current_app.config['PDF_PROBE_TIMEOUT'],
        range_bytes=current_app.config['PDF_PROBE_RANGE_BYTES'],
    )
    report = collector.collect(candidates, environment=environment, reference=reference)

    # the host reports its own render status; it is echoed back as-is
    report.render_state = request.args.get('state')
    return jsonify(report.to_dict())


@bp.route("/api/books/<int:book_id>/download")
def pdf_download(book_id):
    book = _get_book(book_id)
    if book is None:
        return _not_found()

    path = book.local_pdf_path(_public_root())
    if path is not None:
        return send_file(
            path,
            mimetype='application/pdf',
            as_attachment=True,
            download_name=book.download_name(),
        )

    first = _resolver().resolve(book.pdf_reference()).first
    if first is None:
        return _not_found(PDF_NO_CANDIDATES)
    return redirect(first.url)
