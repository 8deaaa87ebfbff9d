import datetime
import os

from werkzeug.security import safe_join

from app import db
from app.services.pdf.references import PdfReference


class Book(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text)
    # Relative ("/uploads/pdfs/x.pdf") or absolute ("https://...") location
    pdf_url = db.Column(db.String(500), nullable=False)
    cover = db.Column(db.String(200))
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __str__(self):
        return f"{self.title} by {self.author}"

    @property
    def is_remote(self):
        return self.pdf_url.startswith(('http://', 'https://', '//'))

    def pdf_reference(self):
        return PdfReference(
            primary_url=self.pdf_url,
            book_id=str(self.id) if self.id is not None else None,
            book_title=self.title,
        )

    def local_pdf_path(self, public_root):
        """Path of the stored PDF under ``public_root``, or None.

        None is returned for remote URLs, for paths escaping ``public_root``
        and for files that do not exist.
        """
        if not self.pdf_url or self.is_remote:
            return None
        path = safe_join(public_root, self.pdf_url.lstrip('/'))
        if path is None or not os.path.isfile(path):
            return None
        return path

    def download_name(self):
        safe_title = ''.join(c if c.isalnum() or c == '.' else '_' for c in self.title)
        return f"{safe_title or 'document'}.pdf"

    def to_dict(self):
        reference = self.pdf_reference()
        return {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'description': self.description,
            'cover': self.cover,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'pdf': {
                'primary_url': reference.primary_url,
                'book_id': reference.book_id,
                'book_title': reference.book_title,
            },
        }
