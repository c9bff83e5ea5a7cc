from __future__ import annotations

import http.client
import json
import random
import tempfile
import urllib.error
from datetime import timedelta
from io import StringIO
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import yaml
from django.conf import settings
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.http import HttpResponse
from django.test import Client, RequestFactory, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from wordexplorer.engine.index import LinkingEngine
from wordexplorer.engine.types import LinkDecision
from wordexplorer.forms import ExploreForm, LinksForm
from wordexplorer.history import HistoryStore
from wordexplorer.middleware import SlidingWindowRateThrottle
from wordexplorer.models import Exploration
from wordexplorer.services import (
    RANDOM_WORDS,
    STREAM_ERROR_DETAIL,
    ContentSourceError,
    OllamaContentSource,
    build_prompt,
    link_decisions,
    parse_stream_lines,
    prompt_category,
    random_word,
    render_decisions_html,
    stream_explanation,
)

SAMPLE_TEXT = 'The quantum theory of consciousness fascinates philosophers.'


class FakeSource:
    def __init__(self, fragments, error_after=None):
        self.fragments = fragments
        self.error_after = error_after
        self.calls = []

    def stream(self, word, is_random=False):
        self.calls.append((word, is_random))
        for index, fragment in enumerate(self.fragments):
            if self.error_after is not None and index == self.error_after:
                raise ContentSourceError('backend went away')
            yield fragment


def read_events(response):
    body = b''.join(response.streaming_content).decode('utf-8')
    return [json.loads(line) for line in body.splitlines() if line.strip()]


class HistoryStoreTests(TestCase):
    def setUp(self) -> None:
        self.store = HistoryStore('session-a', max_entries=3)
        self.now = timezone.now()

    def test_put_and_get_all_newest_first(self) -> None:
        self.store.put('quantum', 'Quantum text', timestamp=self.now - timedelta(minutes=2))
        self.store.put('theory', 'Theory text', timestamp=self.now)

        entries = self.store.get_all()
        self.assertEqual([entry.word for entry in entries], ['theory', 'quantum'])
        self.assertEqual(entries[0].preview, 'Theory text')
        self.assertEqual(self.store.word_count(), 2)

    def test_repeated_word_overwrites_and_counts_visits(self) -> None:
        self.store.put('quantum', 'First', timestamp=self.now - timedelta(minutes=5))
        self.store.put('theory', 'Other', timestamp=self.now - timedelta(minutes=1))
        entry = self.store.put('quantum', 'Second', timestamp=self.now)

        self.assertEqual(entry.visits, 2)
        self.assertEqual(entry.preview, 'Second')
        self.assertEqual(Exploration.objects.filter(word='quantum').count(), 1)
        self.assertEqual(self.store.explored_words(), ['quantum', 'theory'])

    def test_preview_is_truncated(self) -> None:
        entry = self.store.put('long', 'x' * 800)
        self.assertEqual(len(entry.preview), 500)

    def test_store_is_trimmed_to_limit(self) -> None:
        for offset, word in enumerate(['one', 'two', 'three', 'four']):
            self.store.put(word, word, timestamp=self.now + timedelta(seconds=offset))

        self.assertEqual(self.store.explored_words(), ['four', 'three', 'two'])

    def test_blank_word_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.store.put('   ', 'content')

    def test_sessions_are_isolated_and_clear_counts(self) -> None:
        other = HistoryStore('session-b')
        self.store.put('quantum', 'A')
        self.store.put('theory', 'B')
        other.put('quantum', 'C')

        self.assertEqual(self.store.clear(), 2)
        self.assertEqual(self.store.get_all(), [])
        self.assertEqual(other.word_count(), 1)

    def test_search_matches_word_or_preview(self) -> None:
        self.store.put('quantum', 'Tiny particles behave strangely.', timestamp=self.now - timedelta(minutes=1))
        self.store.put('theory', 'A quantum of explanation.', timestamp=self.now)
        self.store.put('harmony', 'Music and balance.', timestamp=self.now - timedelta(minutes=2))

        self.assertEqual([entry.word for entry in self.store.search('QUANTUM')], ['theory', 'quantum'])
        self.assertEqual(len(self.store.search('quantum', limit=1)), 1)
        self.assertEqual(self.store.search('   '), [])

    def test_most_explored_and_recent(self) -> None:
        self.store.put('quantum', 'Q' * 150, timestamp=self.now - timedelta(minutes=3))
        self.store.put('theory', 'T', timestamp=self.now - timedelta(minutes=2))
        self.store.put('quantum', 'Q' * 150, timestamp=self.now - timedelta(minutes=1))

        most = self.store.most_explored()
        self.assertEqual(most[0]['word'], 'quantum')
        self.assertEqual(most[0]['count'], 2)

        recent = self.store.recent(limit=1)
        self.assertEqual(recent[0]['word'], 'quantum')
        self.assertEqual(recent[0]['preview'], 'Q' * 100 + '...')


class PromptTests(TestCase):
    def test_prompt_category(self) -> None:
        self.assertEqual(prompt_category('Quantum'), 'scientific')
        self.assertEqual(prompt_category('nostalgia'), 'emotional')
        self.assertIsNone(prompt_category('table'))

    def test_build_prompt_for_random_and_clicked_words(self) -> None:
        entry_prompt = build_prompt('serendipity', is_random=True)
        self.assertIn('"serendipity"', entry_prompt)
        self.assertIn('entry point', entry_prompt)
        self.assertIn('Emotional context', entry_prompt)

        clicked_prompt = build_prompt('quantum')
        self.assertIn('clicked "quantum"', clicked_prompt)
        self.assertIn('Scientific context', clicked_prompt)

    def test_random_word_comes_from_the_list(self) -> None:
        self.assertIn(random_word(random.Random(7)), RANDOM_WORDS)


class ContentSourceTests(TestCase):
    def test_parse_stream_lines_skips_invalid_json(self) -> None:
        lines = [
            b'{"message": {"content": "Hello"}, "done": false}\n',
            b'not json\n',
            b'\n',
            '{"message": {"content": " world"}, "done": false}',
            b'{"message": {"content": ""}, "done": true}\n',
        ]
        self.assertEqual(
            list(parse_stream_lines(lines)),
            [('Hello', False), (' world', False), ('', True)],
        )

    @patch('wordexplorer.services.urllib.request.urlopen')
    def test_stream_posts_chat_request_and_yields_fragments(self, mock_urlopen) -> None:
        response = MagicMock()
        response.__iter__.return_value = iter([
            b'{"message": {"content": "Quantum"}, "done": false}\n',
            b'{"message": {"content": " physics"}, "done": false}\n',
            b'{"message": {"content": ""}, "done": true}\n',
            b'{"message": {"content": "ignored"}, "done": false}\n',
        ])
        mock_urlopen.return_value = response

        source = OllamaContentSource(base_url='http://ollama.test/', model='tiny', timeout=5)
        self.assertEqual(list(source.stream('quantum')), ['Quantum', ' physics'])

        request = mock_urlopen.call_args[0][0]
        self.assertEqual(request.full_url, 'http://ollama.test/api/chat')
        payload = json.loads(request.data)
        self.assertEqual(payload['model'], 'tiny')
        self.assertTrue(payload['stream'])
        self.assertIn('quantum', payload['messages'][0]['content'])
        self.assertEqual(mock_urlopen.call_args[1]['timeout'], 5)

    @patch('wordexplorer.services.urllib.request.urlopen')
    def test_stream_wraps_transport_errors(self, mock_urlopen) -> None:
        mock_urlopen.side_effect = urllib.error.URLError('connection refused')
        source = OllamaContentSource()
        with self.assertRaises(ContentSourceError):
            list(source.stream('quantum'))

    @patch('wordexplorer.services.urllib.request.urlopen')
    def test_truncated_response_ends_with_error_event(self, mock_urlopen) -> None:
        def truncated_lines():
            yield b'{"message": {"content": "Quantum"}, "done": false}\n'
            raise http.client.IncompleteRead(b'')

        response = MagicMock()
        response.__iter__.return_value = truncated_lines()
        mock_urlopen.return_value = response

        events = list(stream_explanation('quantum', OllamaContentSource()))
        self.assertEqual([event['type'] for event in events], ['init', 'content', 'error'])
        self.assertEqual(events[-1]['detail'], STREAM_ERROR_DETAIL)


class RenderingTests(TestCase):
    def test_render_decisions_html(self) -> None:
        decisions = [
            LinkDecision(
                text='Quantum',
                linkable=True,
                word='quantum',
                category='science',
                confidence=1.0,
                importance=0.97,
                styling='link-high-importance',
                active=True,
            ),
            LinkDecision.pass_through(' <b> & '),
            LinkDecision(text='world', linkable=True, word='world', category='general', styling='link-standard'),
        ]
        html = render_decisions_html(decisions)

        self.assertIn('class="smart-link link-high-importance is-active"', html)
        self.assertIn('data-word="Quantum"', html)
        self.assertIn('data-category="science"', html)
        self.assertIn('science • 100% relevance', html)
        self.assertIn(' &lt;b&gt; &amp; ', html)
        self.assertIn('class="smart-link link-standard"', html)
        self.assertIn("title='Explore \"world\"'", html)

    def test_link_decisions_fall_back_to_plain_links(self) -> None:
        engine = LinkingEngine.from_config()
        with patch.object(LinkingEngine, 'generate_links', side_effect=RuntimeError('boom')):
            with self.assertLogs('wordexplorer.services', level='ERROR'):
                decisions = link_decisions('The quantum theory', engine=engine)

        self.assertEqual(decisions, engine.plain_links('The quantum theory'))
        self.assertTrue(decisions[0].linkable)


class StreamExplanationTests(TestCase):
    def test_events_relink_accumulated_text(self) -> None:
        source = FakeSource(['Quantum theory ', 'reshapes how philosophers think.'])
        events = list(stream_explanation('quantum', source, exclusions=['quantum'], is_random=True))

        self.assertEqual(source.calls, [('quantum', True)])
        self.assertEqual([event['type'] for event in events], ['init', 'content', 'content', 'done'])
        self.assertEqual(events[1]['content'], 'Quantum theory ')
        self.assertIn('philosophers', events[2]['html'])
        self.assertNotIn('data-word="Quantum"', events[2]['html'])
        self.assertEqual(events[-1]['content'], 'Quantum theory reshapes how philosophers think.')
        self.assertTrue(events[-1]['done'])

    def test_backend_failure_ends_with_error_event(self) -> None:
        source = FakeSource(['Partial ', 'never sent'], error_after=1)
        events = list(stream_explanation('quantum', source))

        self.assertEqual([event['type'] for event in events], ['init', 'content', 'error'])
        self.assertEqual(events[-1]['detail'], STREAM_ERROR_DETAIL)


class FormTests(TestCase):
    def test_explore_form_normalises_whitespace(self) -> None:
        form = ExploreForm({'word': '  quantum   physics '})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['word'], 'quantum physics')

    def test_explore_form_rejects_missing_and_invalid_words(self) -> None:
        missing = ExploreForm({})
        self.assertFalse(missing.is_valid())
        self.assertEqual(missing.errors['word'], ['Word is required'])

        self.assertFalse(ExploreForm({'word': '42 things'}).is_valid())
        self.assertTrue(ExploreForm({'word': "rock-'n' roll"}).is_valid())

    def test_links_form_parses_exclusions(self) -> None:
        form = LinksForm({'text': ' spaced ', 'exclusions': 'Quantum, theory\nquantum,,'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['exclusions'], ['quantum', 'theory'])
        self.assertEqual(form.cleaned_data['text'], ' spaced ')
        self.assertFalse(form.cleaned_data['fallback'])


class ViewTests(TestCase):
    def setUp(self) -> None:
        cache.clear()
        self.client = Client()

    def post_json(self, name, payload):
        return self.client.post(reverse(name), data=json.dumps(payload), content_type='application/json')

    def test_home_renders(self) -> None:
        response = self.client.get(reverse('wordexplorer:home'))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, 'wordexplorer/home.html')

    def test_links_returns_decisions_and_html(self) -> None:
        response = self.post_json(
            'wordexplorer:links',
            {'text': SAMPLE_TEXT, 'active_word': 'consciousness', 'exclusions': ['quantum']},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()

        self.assertEqual(''.join(item['text'] for item in data['decisions']), SAMPLE_TEXT)
        linked = {item['text']: item for item in data['decisions'] if item['linkable']}
        self.assertNotIn('quantum', linked)
        self.assertTrue(linked['consciousness']['active'])
        self.assertIn('smart-link', data['html'])

    def test_links_fallback_links_every_word(self) -> None:
        response = self.post_json('wordexplorer:links', {'text': 'The cat', 'fallback': True})
        linked = [item['text'] for item in response.json()['decisions'] if item['linkable']]
        self.assertEqual(linked, ['The', 'cat'])

    def test_links_rejects_invalid_payload(self) -> None:
        response = self.post_json('wordexplorer:links', {'text': 'x', 'active_word': 'a' * 101})
        self.assertEqual(response.status_code, 400)
        self.assertIn('active_word', response.json()['errors'])

    def test_links_requires_post(self) -> None:
        response = self.client.get(reverse('wordexplorer:links'))
        self.assertEqual(response.status_code, 405)

    def test_explanation_requires_word_on_post(self) -> None:
        response = self.post_json('wordexplorer:explanation', {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Word is required'})

    @patch('wordexplorer.views.get_content_source')
    def test_explanation_streams_and_records_history(self, mock_source) -> None:
        mock_source.return_value = FakeSource(['Quantum ideas ', 'reshape philosophy.'])

        response = self.post_json('wordexplorer:explanation', {'word': 'quantum'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Type'].startswith('application/x-ndjson'))
        events = read_events(response)

        self.assertEqual(events[0], {'type': 'init', 'word': 'quantum'})
        self.assertEqual(events[-1]['type'], 'done')
        self.assertNotIn('data-word="Quantum"', events[-2]['html'])
        exploration = Exploration.objects.get()
        self.assertEqual(exploration.word, 'quantum')
        self.assertEqual(exploration.content_preview, 'Quantum ideas reshape philosophy.')

        history = self.client.get(reverse('wordexplorer:history_api')).json()
        self.assertEqual([entry['word'] for entry in history['entries']], ['quantum'])

    @patch('wordexplorer.views.random_word', return_value='serendipity')
    @patch('wordexplorer.views.get_content_source')
    def test_explanation_get_uses_random_word(self, mock_source, _mock_random) -> None:
        source = FakeSource(['A happy accident.'])
        mock_source.return_value = source

        events = read_events(self.client.get(reverse('wordexplorer:explanation')))
        self.assertEqual(source.calls, [('serendipity', True)])
        self.assertEqual(events[-1]['word'], 'serendipity')

    @patch('wordexplorer.views.get_content_source')
    def test_failed_explanation_is_not_recorded(self, mock_source) -> None:
        mock_source.return_value = FakeSource(['Partial'], error_after=0)

        events = read_events(self.post_json('wordexplorer:explanation', {'word': 'quantum'}))
        self.assertEqual(events[-1], {'type': 'error', 'word': 'quantum', 'detail': STREAM_ERROR_DETAIL})
        self.assertFalse(Exploration.objects.exists())

    @patch('wordexplorer.views.get_content_source')
    def test_history_views(self, mock_source) -> None:
        mock_source.return_value = FakeSource(['Ideas about harmony.'])
        read_events(self.post_json('wordexplorer:explanation', {'word': 'harmony'}))

        page = self.client.get(reverse('wordexplorer:history'), {'q': 'harm'})
        self.assertEqual(page.status_code, 200)
        self.assertTemplateUsed(page, 'wordexplorer/history.html')
        self.assertContains(page, 'harmony')

        stats = self.client.get(reverse('wordexplorer:history_stats')).json()
        self.assertEqual(stats['word_count'], 1)
        self.assertEqual(stats['most_explored'][0]['count'], 1)

        search = self.client.get(reverse('wordexplorer:history_api'), {'q': 'nothing'}).json()
        self.assertEqual(search, {'query': 'nothing', 'entries': []})

        cleared = self.post_json('wordexplorer:history_clear', {})
        self.assertEqual(cleared.json(), {'removed': 1})
        self.assertFalse(Exploration.objects.exists())

    def test_history_clear_form_redirects(self) -> None:
        response = self.client.post(reverse('wordexplorer:history_clear'))
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], reverse('wordexplorer:history'))

    @override_settings(THROTTLE_LIMIT=1)
    def test_links_are_throttled(self) -> None:
        first = self.post_json('wordexplorer:links', {'text': 'cat'})
        second = self.post_json('wordexplorer:links', {'text': 'cat'})
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 429)


class RateLimitMiddlewareTests(TestCase):
    def setUp(self) -> None:
        cache.clear()
        self.factory = RequestFactory()

    @override_settings(THROTTLED_ROUTES=['sample:action'])
    def test_rate_limit_blocks_after_threshold(self) -> None:
        middleware = SlidingWindowRateThrottle(lambda request: HttpResponse('OK'), limit=2, window=60, key_prefix='test-rate')

        def check(name='action', ip='127.0.0.1'):
            req = self.factory.post('/sample-action/')
            req.resolver_match = SimpleNamespace(namespace='sample', url_name=name, view_name=f'sample:{name}')
            req.META['REMOTE_ADDR'] = ip
            return middleware.process_view(req, None, (), {})

        self.assertIsNone(check())
        self.assertIsNone(check())
        blocked = check()
        self.assertEqual(blocked.status_code, 429)
        self.assertEqual(json.loads(blocked.content)['route'], 'sample:action')

        self.assertIsNone(check(ip='10.0.0.1'))
        self.assertIsNone(check(name='other'))

    def test_forwarded_header_identifies_client(self) -> None:
        middleware = SlidingWindowRateThrottle(lambda request: HttpResponse('OK'))
        req = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(middleware._get_client_ip(req), '203.0.113.5')


class SettingsTests(TestCase):
    def test_no_password_validators_without_accounts(self) -> None:
        self.assertEqual(settings.AUTH_PASSWORD_VALIDATORS, [])
        self.assertNotIn('axes', settings.INSTALLED_APPS)


class LinkReportCommandTests(TestCase):
    def test_report_prints_metrics(self) -> None:

        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / 'sample.txt'
            path.write_text(SAMPLE_TEXT, encoding='utf-8')
            out = StringIO()
            call_command('link_report', str(path), stdout=out)

        metrics = yaml.safe_load(out.getvalue())
        self.assertEqual(metrics['documents'], 1)
        self.assertEqual(metrics['coverage'], 1.0)
        self.assertEqual(metrics['category_counts'], {'science': 1, 'philosophy': 3})

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(CommandError):
            call_command('link_report', '/nonexistent/words.txt', stdout=StringIO())
