import os
import pytest
from app import create_app, db
from app.models import Book
from app.services.pdf.surfaces import RenderSurface

PDF_BYTES = b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n'


@pytest.fixture
def app(tmp_path):
    """Create and configure a test app."""
    os.environ.setdefault('SECRET_KEY', 'test-secret')
    os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
    app = create_app()
    app.config['TESTING'] = True
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    app.config['PDF_PUBLIC_ROOT'] = str(tmp_path / 'public')
    app.config['LOCAL_PDF_DIR'] = str(tmp_path / 'public' / 'books')
    app.config['DOWNLOAD_DIR'] = str(tmp_path / 'downloads')
    app.config['PUBLIC_ORIGIN'] = None
    app.config['API_BASE_URL'] = None

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def stored_book(app):
    """A book whose PDF exists under PDF_PUBLIC_ROOT."""
    pdf_dir = os.path.join(app.config['PDF_PUBLIC_ROOT'], 'uploads', 'pdfs')
    os.makedirs(pdf_dir, exist_ok=True)
    with open(os.path.join(pdf_dir, 'a.pdf'), 'wb') as f:
        f.write(PDF_BYTES)

    book = Book(title='Muna Madan', author='Laxmi Prasad Devkota', pdf_url='/uploads/pdfs/a.pdf')
    db.session.add(book)
    db.session.commit()
    return book


@pytest.fixture
def remote_book(app):
    book = Book(title='Remote Book', author='Someone', pdf_url='https://cdn.example.com/remote.pdf')
    db.session.add(book)
    db.session.commit()
    return book


class FakeSurface(RenderSurface):
    """Surface whose elements load or fail when the test says so.

    ``auto`` maps a strategy to 'load' or 'error' to report the outcome
    synchronously from inside ``attach``.
    """

    def __init__(self, auto=None):
        super().__init__(width=800, height=600)
        self.auto = auto or {}
        self.mounted = []
        self.max_attached = 0

    @property
    def last(self):
        return self.mounted[-1]

    def _mount(self, handle):
        self.mounted.append(handle)
        self.max_attached = max(self.max_attached, self.attached_count)
        outcome = self.auto.get(handle.strategy)
        if outcome == 'load':
            handle.loaded()
        elif outcome == 'error':
            handle.failed('refused')


class _ManualCall:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualTimer:
    """Timer driven by ``advance()`` instead of the wall clock."""

    def __init__(self):
        self.current = 0.0
        self._calls = []

    def now(self):
        return self.current

    def call_later(self, delay, callback):
        call = _ManualCall(self.current + delay, callback)
        self._calls.append(call)
        return call

    @property
    def pending(self):
        return [c for c in self._calls if not c.cancelled and not c.fired]

    def advance(self, seconds):
        target = self.current + seconds
        while True:
            due = [c for c in self.pending if c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self.current = call.due
            call.fired = True
            call.callback()
        self.current = target


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def make_surface():
    """Factory for surfaces with scripted outcomes, see ``FakeSurface``."""
    return FakeSurface
