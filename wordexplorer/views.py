"""Django views for the word explorer app.

These views render the reader page, stream explanations as
newline-delimited JSON, compute link decisions for arbitrary text and expose
the per-session exploration history. Each view delegates the actual work to
the services and history modules.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, Iterator

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse, StreamingHttpResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .forms import ExploreForm, HistorySearchForm, LinksForm
from .history import HistoryStore
from .services import (
    get_content_source,
    get_engine,
    link_decisions,
    random_word,
    render_decisions_html,
    stream_explanation,
)

logger = logging.getLogger(__name__)


def _session_key(request: HttpRequest) -> str:
    """Return the session key, creating the session on first use."""

    if not request.session.session_key:
        request.session.save()
        # Mark modified so the middleware sends the new session cookie.
        request.session.modified = True
    return request.session.session_key  # type: ignore[return-value]


def _history(request: HttpRequest) -> HistoryStore:
    return HistoryStore(_session_key(request))


def _read_payload(request: HttpRequest) -> Dict[str, Any]:
    """Return the request data from a JSON body or regular form fields."""

    if request.content_type == 'application/json':
        try:
            payload = json.loads(request.body or b'{}')
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return payload if isinstance(payload, dict) else {}
    return request.POST.dict()


def home(request: HttpRequest) -> HttpResponse:
    """Render the reader page."""

    history = _history(request)
    return render(
        request,
        'wordexplorer/home.html',
        {
            'word_count': history.word_count(),
            'recent': history.recent(limit=5),
        },
    )


@require_http_methods(['GET', 'POST'])
def explanation(request: HttpRequest) -> HttpResponse:
    """Stream an explanation for a random word (GET) or a clicked word (POST)."""

    if request.method == 'POST':
        form = ExploreForm(_read_payload(request))
        if not form.is_valid():
            error = form.errors.get('word', ['Word is required'])[0]
            return JsonResponse({'error': error}, status=400)
        word = form.cleaned_data['word']
        is_random = False
    else:
        word = random_word()
        is_random = True

    history = _history(request)
    exclusions = [word]
    if getattr(settings, 'WORD_EXPLORER_EXCLUDE_EXPLORED', False):
        exclusions.extend(history.explored_words())

    events = stream_explanation(
        word,
        get_content_source(),
        exclusions=exclusions,
        is_random=is_random,
    )
    response = StreamingHttpResponse(
        _ndjson(events, history),
        content_type='application/x-ndjson; charset=utf-8',
    )
    response['Cache-Control'] = 'no-cache'
    return response


def _ndjson(events: Iterator[Dict[str, Any]], history: HistoryStore) -> Iterator[str]:
    """Serialize stream events and record completed explanations."""

    for event in events:
        if event['type'] == 'done' and event.get('content'):
            history.put(event['word'], event['content'])
        yield json.dumps(event) + '\n'


@require_POST
def links(request: HttpRequest) -> HttpResponse:
    """Return link decisions and rendered HTML for the posted text."""

    payload = _read_payload(request)
    exclusions = payload.get('exclusions')
    if isinstance(exclusions, (list, tuple)):
        payload['exclusions'] = '\n'.join(str(item) for item in exclusions)

    form = LinksForm(payload)
    if not form.is_valid():
        return JsonResponse({'errors': form.errors.get_json_data()}, status=400)

    text = form.cleaned_data['text']
    active_word = form.cleaned_data['active_word']
    engine = get_engine()
    if form.cleaned_data['fallback']:
        decisions = engine.plain_links(text, active_word)
    else:
        decisions = link_decisions(text, active_word, form.cleaned_data['exclusions'], engine)

    return JsonResponse(
        {
            'decisions': [asdict(decision) for decision in decisions],
            'html': render_decisions_html(decisions),
        }
    )


@require_GET
def history_page(request: HttpRequest) -> HttpResponse:
    """List the explorations of the current session."""

    form = HistorySearchForm(request.GET)
    query = form.cleaned_data['q'] if form.is_valid() else ''
    history = _history(request)
    entries = history.search(query) if query else history.get_all()
    return render(
        request,
        'wordexplorer/history.html',
        {
            'form': form,
            'entries': entries,
            'query': query,
            'most_explored': history.most_explored(),
        },
    )


@require_GET
def history_api(request: HttpRequest) -> HttpResponse:
    """Return the session history as JSON, optionally filtered by ``q``."""

    form = HistorySearchForm(request.GET)
    query = form.cleaned_data['q'] if form.is_valid() else ''
    history = _history(request)
    entries = history.search(query) if query else history.get_all()
    return JsonResponse({'query': query, 'entries': [entry.as_dict() for entry in entries]})


@require_GET
def history_stats(request: HttpRequest) -> HttpResponse:
    """Return exploration statistics for the current session."""

    history = _history(request)
    return JsonResponse(
        {
            'word_count': history.word_count(),
            'recent': history.recent(),
            'most_explored': history.most_explored(),
        }
    )


@require_POST
def history_clear(request: HttpRequest) -> HttpResponse:
    """Remove every exploration recorded for the current session."""

    removed = _history(request).clear()
    logger.info('Cleared %s history entries', removed)
    if request.content_type == 'application/json':
        return JsonResponse({'removed': removed})
    return redirect('wordexplorer:history')
