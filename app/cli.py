"""Flask CLI commands: ``flask pdf ...`` and ``flask seed-books``."""

import json

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from app import db
from app.models import Book
from app.services.pdf import (
    CandidateResolver, DiagnosticCollector, DownloadFallback, Environment, HttpDownloader,
    HttpProbeSurface, PdfViewer, RenderState, SchedulerTimer, CandidatesExhausted,
)

pdf_cli = AppGroup('pdf', help='Inspect how book PDFs are delivered.')

DEFAULT_ORIGIN = 'http://localhost:5000'


def _load_book(book_id):
    book = db.session.get(Book, book_id)
    if book is None:
        raise click.ClickException(f"Book {book_id} not found")
    return book


def _resolver(origin):
    return CandidateResolver.from_config(current_app.config, origin)


def _collector():
    return DiagnosticCollector(
        timeout=current_app.config['PDF_PROBE_TIMEOUT'],
        range_bytes=current_app.config['PDF_PROBE_RANGE_BYTES'],
    )


origin_option = click.option(
    '--origin', default=DEFAULT_ORIGIN, show_default=True,
    help='Origin relative PDF URLs are resolved against (PUBLIC_ORIGIN wins when set).')


@pdf_cli.command('candidates')
@click.argument('book_id', type=int)
@origin_option
def candidates_command(book_id, origin):
    """List the candidate URLs of a book's PDF in priority order."""
    book = _load_book(book_id)
    candidates = _resolver(origin).resolve(book.pdf_reference())
    if not candidates:
        click.echo('No candidates')
        return
    for position, candidate in enumerate(candidates, start=1):
        click.echo(f"{position}. [{candidate.source}] {candidate.url}")


@pdf_cli.command('check')
@click.argument('book_id', type=int)
@origin_option
@click.option('--embed-timeout', type=float, default=None, help='Seconds before falling back to an iframe.')
@click.option('--iframe-timeout', type=float, default=None, help='Seconds before moving to the next candidate.')
def check_command(book_id, origin, embed_timeout, iframe_timeout):
    """Run the render fallback chain headlessly against a live server."""
    book = _load_book(book_id)
    config = current_app.config
    embed_timeout = embed_timeout if embed_timeout is not None else config['PDF_EMBED_TIMEOUT']
    iframe_timeout = iframe_timeout if iframe_timeout is not None else config['PDF_IFRAME_TIMEOUT']

    timer = SchedulerTimer()
    surface = HttpProbeSurface(timer.submit, timeout=max(embed_timeout, iframe_timeout))

    def report(event):
        if event.kind == 'state' and event.candidate is not None:
            click.echo(f"-> {event.strategy} {event.candidate.url}")

    viewer = PdfViewer(
        book.pdf_reference(),
        _resolver(origin),
        surface,
        timer,
        collector=_collector(),
        embed_timeout=embed_timeout,
        iframe_timeout=iframe_timeout,
        listener=report,
    )
    selector = viewer.open()
    # every candidate gets at most both timeouts, plus slack for the last callbacks
    budget = len(viewer.candidates) * (embed_timeout + iframe_timeout) + 5
    selector.wait(budget)

    try:
        if selector.state is RenderState.LOADED:
            attempt = selector.attempt
            click.echo(f"Loaded {attempt.candidate.url} via {attempt.strategy}")
            return
        message = selector.error.message if selector.error else f"state {selector.state.value}"
        raise click.ClickException(message)
    finally:
        viewer.close()


@pdf_cli.command('diagnose')
@click.argument('book_id', type=int)
@origin_option
def diagnose_command(book_id, origin):
    """Probe every candidate URL and print the diagnostic report as JSON."""
    book = _load_book(book_id)
    reference = book.pdf_reference()
    candidates = _resolver(origin).resolve(reference)
    report = _collector().collect(candidates, environment=Environment.local(), reference=reference)
    click.echo(json.dumps(report.to_dict(), indent=2))


@pdf_cli.command('download')
@click.argument('book_id', type=int)
@origin_option
@click.option('--dest', type=click.Path(file_okay=False), default=None,
              help='Directory to save into (defaults to DOWNLOAD_DIR).')
@click.option('--open/--no-open', 'allow_open', default=True,
              help='Open the PDF in a browser tab when downloading fails.')
def download_command(book_id, origin, dest, allow_open):
    """Download a book's PDF from its first candidate URL."""
    book = _load_book(book_id)
    candidates = _resolver(origin).resolve(book.pdf_reference())
    downloader = HttpDownloader(dest or current_app.config['DOWNLOAD_DIR'])
    fallback = DownloadFallback(downloader) if allow_open else DownloadFallback(downloader, opener=lambda url: False)

    try:
        outcome = fallback.run(candidates, book.download_name())
    except CandidatesExhausted as e:
        raise click.ClickException(e.message)

    if outcome.path:
        click.echo(f"Saved {outcome.url} to {outcome.path}")
    elif outcome.succeeded:
        click.echo(f"Opened {outcome.url} in a new browser tab")
    else:
        raise click.ClickException(outcome.error)


@click.command('seed-books')
@with_appcontext
def seed_books_command():
    """Add the sample books if the catalogue is empty."""
    from app.seeds.seed import seed_books
    created = seed_books()
    click.echo(f"Seeded {created} books")


def register_commands(app):
    app.cli.add_command(pdf_cli)
    app.cli.add_command(seed_books_command)
