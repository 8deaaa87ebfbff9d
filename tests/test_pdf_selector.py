import pytest

from app.services.pdf.errors import CandidatesExhausted, ContainerUnavailable
from app.services.pdf.references import CandidateList, PdfReference, resolve_candidates
from app.services.pdf.selector import AttemptStatus, RenderState, RenderStrategySelector

ORIGIN = 'https://site.test'


def make_selector(candidates, surface, timer):
    selector = RenderStrategySelector(candidates, surface, timer, embed_timeout=3, iframe_timeout=5)
    attached = []
    selector.subscribe(lambda event: attached.append(surface.attached_count))
    return selector, attached


def three_candidates():
    return resolve_candidates(PdfReference('/files/a.pdf', book_id='1', book_title='A'), ORIGIN)


def errors(selector):
    return [e for e in selector.events if e.kind == 'error']


def test_embed_load_reaches_loaded(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()

    assert selector.state is RenderState.TRYING_EMBED
    assert surface.last.strategy == 'embed'
    assert surface.last.url == 'https://site.test/files/a.pdf'

    surface.last.loaded()

    assert selector.state is RenderState.LOADED
    assert selector.attempt.status is AttemptStatus.LOADED
    assert surface.attached_count == 1
    assert [e.kind for e in selector.events].count('loaded') == 1
    # the embed timeout was cancelled
    assert timer.pending == []
    assert selector.wait(0)


def test_embed_error_falls_back_to_iframe_on_same_candidate(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    embed = surface.last

    embed.failed('no plugin')

    assert selector.state is RenderState.TRYING_IFRAME
    assert not embed.attached
    assert surface.last.strategy == 'iframe'
    assert surface.last.url == embed.url
    assert selector.attempts[0].status is AttemptStatus.ERRORED

    surface.last.loaded()
    assert selector.state is RenderState.LOADED


def test_timeouts_escalate_through_every_candidate(surface, timer):
    selector, attached = make_selector(three_candidates(), surface, timer)
    selector.start()

    timer.advance(3)
    assert selector.state is RenderState.TRYING_IFRAME
    assert selector.attempts[0].status is AttemptStatus.TIMED_OUT

    timer.advance(5)
    assert selector.state is RenderState.TRYING_EMBED
    assert surface.last.url == 'https://site.test/api/books/pdf-stream/1'

    timer.advance(8)
    timer.advance(8)

    assert selector.state is RenderState.EXHAUSTED
    assert len(selector.attempts) == 6
    assert all(a.status is AttemptStatus.TIMED_OUT for a in selector.attempts)
    assert surface.attached_count == 0
    assert max(attached) <= 1
    assert surface.max_attached == 1

    (error,) = errors(selector)
    assert isinstance(error.error, CandidatesExhausted)
    assert error.error.tried == 3
    assert error.message


def test_single_candidate_both_strategies_error(surface, timer):
    candidates = resolve_candidates(PdfReference('/files/a.pdf'), ORIGIN)
    selector, _ = make_selector(candidates, surface, timer)
    selector.start()

    assert surface.last.url == 'https://site.test/files/a.pdf'
    surface.last.failed('embed error')
    surface.last.failed('iframe error')

    assert selector.state is RenderState.EXHAUSTED
    assert selector.tried == 1
    assert len(errors(selector)) == 1
    assert selector.error.user_visible

    # nothing left to fire
    timer.advance(60)
    assert len(errors(selector)) == 1


def test_synchronous_failures_never_overlap_elements(make_surface, timer):
    surface = make_surface(auto={'embed': 'error', 'iframe': 'error'})
    selector, attached = make_selector(three_candidates(), surface, timer)
    selector.start()

    assert selector.state is RenderState.EXHAUSTED
    assert len(surface.mounted) == 6
    assert surface.max_attached == 1
    assert max(attached) <= 1
    assert surface.attached_count == 0
    assert len(errors(selector)) == 1
    assert timer.pending == []


def test_synchronous_load_keeps_the_element(make_surface, timer):
    surface = make_surface(auto={'embed': 'error', 'iframe': 'load'})
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()

    assert selector.state is RenderState.LOADED
    assert selector.attempt.strategy == 'iframe'
    assert surface.attached_count == 1
    assert timer.pending == []


def test_stale_callbacks_are_ignored(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    embed = surface.last
    timer.advance(3)
    assert selector.state is RenderState.TRYING_IFRAME

    # the old embed reporting late must not change anything
    embed._on_load()
    embed._on_error('late')

    assert selector.state is RenderState.TRYING_IFRAME
    assert selector.attempt.strategy == 'iframe'


def test_late_timeout_after_load_is_ignored(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    surface.last.loaded()
    timer.advance(100)
    assert selector.state is RenderState.LOADED


def test_cancel_mid_attempt_stops_everything(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    received = []
    selector.start()
    handle = surface.last
    selector.subscribe(received.append)

    selector.cancel()

    assert selector.state is RenderState.CANCELLED
    assert surface.attached_count == 0
    assert not handle.attached
    assert timer.pending == []
    received.clear()

    handle._on_load()
    handle._on_error('late')
    timer.advance(100)

    assert received == []
    assert selector.state is RenderState.CANCELLED

    # cancelling twice is harmless
    selector.cancel()
    assert received == []


def test_cancel_after_load_detaches_document(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    surface.last.loaded()

    selector.cancel()

    assert surface.attached_count == 0
    assert selector.state is RenderState.CANCELLED


def test_double_detach_is_a_no_op(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    handle = surface.last
    handle.detach()
    handle.detach()
    assert surface.attached_count == 0


def test_missing_container_is_reported_immediately(surface, timer):
    surface.available = False
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()

    assert selector.state is RenderState.EXHAUSTED
    (error,) = errors(selector)
    assert isinstance(error.error, ContainerUnavailable)
    assert surface.mounted == []


def test_container_removed_mid_chain(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    surface.close()

    timer.advance(3)

    assert selector.state is RenderState.EXHAUSTED
    (error,) = errors(selector)
    assert isinstance(error.error, ContainerUnavailable)
    assert timer.pending == []


def test_no_candidates_is_exhausted(surface, timer):
    selector, _ = make_selector(CandidateList(), surface, timer)
    selector.start()

    assert selector.state is RenderState.EXHAUSTED
    (error,) = errors(selector)
    assert isinstance(error.error, CandidatesExhausted)
    assert error.error.tried == 0


def test_attach_exception_counts_as_strategy_failure(make_surface, timer):
    class BrokenEmbedSurface(make_surface):
        def attach(self, strategy, url, on_load, on_error):
            if strategy == 'embed':
                raise RuntimeError('embed not supported')
            return super().attach(strategy, url, on_load, on_error)

    surface = BrokenEmbedSurface()
    candidates = resolve_candidates(PdfReference('/files/a.pdf'), ORIGIN)
    selector, _ = make_selector(candidates, surface, timer)
    selector.start()

    assert selector.state is RenderState.TRYING_IFRAME
    assert selector.attempts[0].error == 'embed not supported'


def test_start_twice_is_rejected(surface, timer):
    selector, _ = make_selector(three_candidates(), surface, timer)
    selector.start()
    with pytest.raises(RuntimeError):
        selector.start()


def test_listener_errors_do_not_break_the_chain(surface, timer):
    selector = RenderStrategySelector(three_candidates(), surface, timer)

    def broken(event):
        raise ValueError('boom')

    selector.subscribe(broken)
    selector.start()
    surface.last.loaded()
    assert selector.state is RenderState.LOADED


def test_unsubscribe(surface, timer):
    selector = RenderStrategySelector(three_candidates(), surface, timer)
    seen = []
    unsubscribe = selector.subscribe(seen.append)
    unsubscribe()
    selector.start()
    assert seen == []


@pytest.mark.parametrize('outcome, closing_state', [
    ('load', RenderState.LOADED),
    ('error', RenderState.EXHAUSTED),
])
def test_closing_from_a_listener_suppresses_terminal_event(make_surface, timer, outcome, closing_state):
    surface = make_surface(auto={'embed': outcome, 'iframe': outcome})
    candidates = resolve_candidates(PdfReference('/files/a.pdf'), ORIGIN)
    selector = RenderStrategySelector(candidates, surface, timer)
    after_close = []

    def close_view(event):
        if selector.state is RenderState.CANCELLED:
            after_close.append((event.kind, event.state))
        elif event.kind == 'state' and event.state is closing_state:
            selector.cancel()

    selector.subscribe(close_view)
    selector.start()

    assert selector.state is RenderState.CANCELLED
    assert after_close == [('state', RenderState.CANCELLED)]
    assert [e.kind for e in selector.events if e.kind != 'state'] == []
    assert surface.attached_count == 0
    assert timer.pending == []


def test_closing_from_a_listener_stops_other_listeners(surface, timer):
    selector = RenderStrategySelector(three_candidates(), surface, timer)
    seen = []

    def close_view(event):
        if event.state is RenderState.TRYING_IFRAME:
            selector.cancel()

    selector.subscribe(close_view)
    selector.subscribe(lambda event: seen.append(event.state))
    selector.start()
    timer.advance(3)

    assert seen == [RenderState.TRYING_EMBED, RenderState.CANCELLED]
    assert selector.state is RenderState.CANCELLED
    assert surface.attached_count == 0
    assert len(surface.mounted) == 1
    assert timer.pending == []
