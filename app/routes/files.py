import os

from flask import Blueprint, current_app, send_from_directory

bp = Blueprint("files", __name__)


def _pdf_response(directory, filename):
    response = send_from_directory(directory, filename, mimetype='application/pdf')
    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


@bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    """Uploaded PDFs, addressed by the stored relative pdf_url."""
    directory = os.path.join(current_app.config['PDF_PUBLIC_ROOT'], 'uploads')
    return _pdf_response(directory, filename)


@bp.route("/books/<path:filename>")
def local_fallback_file(filename):
    """PDFs named after the book title (the last candidate)."""
    return _pdf_response(current_app.config['LOCAL_PDF_DIR'], filename)
