"""Service functions for fetching explanations and rendering linked text.

These functions sit between the views and the linking engine. They build
explanation prompts, stream text fragments from the language-model backend,
re-run the engine on the accumulated text after every fragment and render
link decisions to HTML, so each piece can be unit tested without a request.
"""

from __future__ import annotations

import http.client
import json
import logging
import random
import urllib.error
import urllib.request
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, Iterator, List, Sequence

from bs4 import BeautifulSoup, NavigableString  # type: ignore
from django.conf import settings

from .engine.config import load_config
from .engine.index import LinkingEngine, normalize_exclusions
from .engine.types import LinkDecision

logger = logging.getLogger(__name__)

RANDOM_WORDS: tuple[str, ...] = (
    'serendipity', 'ephemeral', 'mellifluous', 'wanderlust', 'petrichor',
    'solitude', 'resilience', 'nostalgia', 'euphoria', 'tranquil',
    'innovation', 'curiosity', 'harmony', 'adventure', 'wisdom',
    'creativity', 'mindfulness', 'perspective', 'gratitude', 'compassion',
    'luminescence', 'quintessential', 'renaissance', 'symbiosis', 'paradox',
    'metamorphosis', 'catalyst', 'zeitgeist', 'ubiquitous', 'synchronicity',
    'transcendence', 'equilibrium', 'enigmatic', 'phenomenal', 'eloquent',
)

# Substring keywords selecting an extra hint for the explanation prompt.
PROMPT_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ('scientific', ('quantum', 'molecule', 'photosynthesis', 'neural', 'enzyme', 'gravitational')),
    ('philosophical', ('existential', 'metaphysical', 'consciousness', 'ethics', 'wisdom', 'transcendence')),
    ('artistic', ('renaissance', 'aesthetic', 'harmony', 'creativity', 'mellifluous', 'eloquent')),
    ('emotional', ('serendipity', 'nostalgia', 'euphoria', 'empathy', 'compassion', 'solitude')),
    ('abstract', ('paradox', 'zeitgeist', 'synchronicity', 'quintessential', 'enigmatic')),
)

PROMPT_HINTS: Dict[str, str] = {
    'scientific': (
        'Scientific context: keep the explanation precise but accessible, and connect it to '
        'related discoveries, research or practical applications.'
    ),
    'philosophical': (
        'Philosophical context: explore deeper meanings, mention schools of thought or key '
        'thinkers, and tie the idea back to human experience.'
    ),
    'artistic': (
        'Artistic context: highlight aesthetic qualities, creative movements, notable works and '
        'cultural impact.'
    ),
    'emotional': (
        'Emotional context: explore the psychological side, relationships, personal growth and '
        'the human condition.'
    ),
    'abstract': (
        'Abstract context: unpack the conceptual meaning with concrete examples from the fields '
        'where the idea appears.'
    ),
}

STREAM_ERROR_DETAIL = 'Failed to generate content'


class ContentSourceError(RuntimeError):
    """Raised when the explanation backend cannot be reached or fails."""


def random_word(rng: random.Random | None = None) -> str:
    """Pick an entry-point word for a fresh exploration."""

    return (rng or random).choice(RANDOM_WORDS)


def prompt_category(word: str) -> str | None:
    """Return the prompt hint category for ``word`` when one applies."""

    lowered = word.lower()
    for category, keywords in PROMPT_CATEGORIES:
        if any(keyword in lowered or lowered in keyword for keyword in keywords):
            return category
    return None


def build_prompt(word: str, is_random: bool = False) -> str:
    """Build the explanation prompt for ``word``.

    Parameters
    ----------
    word:
        The word to explain.
    is_random:
        ``True`` when the word is the entry point of a new exploration rather
        than a word the reader clicked in a previous explanation.

    Returns
    -------
    str
        The full prompt text sent to the language model.
    """

    category = prompt_category(word)
    hint = PROMPT_HINTS.get(category, '') if category else ''
    if is_random:
        journey = (
            'This word is the reader\'s entry point to a new journey of discovery, so make the '
            'opening memorable.'
        )
    else:
        journey = (
            f'The reader clicked "{word}" inside another explanation; build on that curiosity and '
            'guide them deeper.'
        )

    sections = [
        'You are an expert educator writing for an encyclopedia where every word leads to deeper '
        'knowledge.',
        f'Write an engaging explanation of "{word}". Start with a compelling definition, mention '
        'etymology when it is interesting, give real-world examples, add historical or cultural '
        'context and point out surprising connections to other fields.',
        'Write in a conversational yet informative tone with vivid, specific language. Aim for '
        '180 to 250 words. Do not use markdown, bullet points or headers.',
        'Use terminology from different domains such as science, art and philosophy so that the '
        'reader has words worth clicking.',
    ]
    if hint:
        sections.append(hint)
    sections.append(journey)
    sections.append('Write a single, flowing paragraph.')
    return '\n\n'.join(sections)


@dataclass(frozen=True)
class OllamaContentSource:
    """Streams explanation fragments from an Ollama chat endpoint."""

    base_url: str = 'http://localhost:11434'
    model: str = 'llama3.1:8b'
    timeout: float = 60.0

    def stream(self, word: str, is_random: bool = False) -> Iterator[str]:
        """Yield content fragments in order until the backend reports ``done``.

        Lines that are not valid JSON are skipped. Transport and HTTP errors
        are raised as :class:`ContentSourceError`.
        """

        payload = {
            'model': self.model,
            'messages': [{'role': 'user', 'content': build_prompt(word, is_random=is_random)}],
            'stream': True,
        }
        request = urllib.request.Request(
            f"{self.base_url.rstrip('/')}/api/chat",
            data=json.dumps(payload).encode('utf-8'),
            headers={'Content-Type': 'application/json'},
            method='POST',
        )
        try:
            response = urllib.request.urlopen(request, timeout=self.timeout)
        except urllib.error.HTTPError as exc:
            logger.warning('Explanation backend returned HTTP %s for %r', exc.code, word)
            raise ContentSourceError(f'Explanation backend error: {exc.code}') from exc
        except (urllib.error.URLError, OSError, http.client.HTTPException) as exc:
            logger.warning('Explanation backend unreachable for %r: %s', word, exc)
            raise ContentSourceError('Explanation backend is unreachable') from exc

        with response:
            try:
                for fragment, done in parse_stream_lines(response):
                    if fragment:
                        yield fragment
                    if done:
                        return
            except (OSError, http.client.HTTPException) as exc:
                logger.warning('Explanation stream for %r interrupted: %s', word, exc)
                raise ContentSourceError('Explanation stream was interrupted') from exc


def parse_stream_lines(lines: Iterable[bytes | str]) -> Iterator[tuple[str, bool]]:
    """Decode newline-delimited JSON chat chunks into ``(content, done)`` pairs."""

    for raw_line in lines:
        line = raw_line.decode('utf-8', errors='replace') if isinstance(raw_line, bytes) else raw_line
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug('Skipping invalid stream line: %r', line[:80])
            continue
        if not isinstance(data, dict):
            continue
        message = data.get('message') or {}
        content = message.get('content', '') if isinstance(message, dict) else ''
        yield content or '', bool(data.get('done'))


def get_content_source() -> OllamaContentSource:
    """Build the content source from Django settings."""

    return OllamaContentSource(
        base_url=getattr(settings, 'WORD_EXPLORER_OLLAMA_URL', 'http://localhost:11434'),
        model=getattr(settings, 'WORD_EXPLORER_MODEL', 'llama3.1:8b'),
        timeout=float(getattr(settings, 'WORD_EXPLORER_TIMEOUT', 60)),
    )


@lru_cache(maxsize=1)
def get_engine() -> LinkingEngine:
    """Return the linking engine configured by ``WORD_EXPLORER_ENGINE_CONFIG``."""

    config_path = getattr(settings, 'WORD_EXPLORER_ENGINE_CONFIG', None)
    return LinkingEngine.from_config(load_config(config_path))


def render_decisions_html(decisions: Sequence[LinkDecision]) -> str:
    """Render link decisions as markup with one ``span`` per linkable word."""

    soup = BeautifulSoup('', 'html.parser')
    for decision in decisions:
        if not decision.linkable:
            soup.append(NavigableString(decision.text))
            continue

        span = soup.new_tag('span')
        classes = ['smart-link', decision.styling or 'link-standard']
        if decision.active:
            classes.append('is-active')
        span['class'] = classes
        span['data-word'] = decision.text
        span['data-category'] = decision.category or 'general'
        if decision.confidence is not None:
            relevance = round(decision.confidence * 100)
            span['title'] = f'Explore "{decision.text}" ({decision.category} • {relevance}% relevance)'
        else:
            span['title'] = f'Explore "{decision.text}"'
        span.string = decision.text
        soup.append(span)
    return str(soup)


def link_decisions(
    text: str,
    active_word: str = '',
    exclusions: Iterable[str] = (),
    engine: LinkingEngine | None = None,
) -> List[LinkDecision]:
    """Run the engine, falling back to plain links if the pipeline fails."""

    linking_engine = engine or get_engine()
    try:
        return linking_engine.generate_links(text, active_word, exclusions)
    except Exception:
        logger.exception('Link scoring failed; falling back to plain links')
        return linking_engine.plain_links(text, active_word)


def render_linked_text(
    text: str,
    active_word: str = '',
    exclusions: Iterable[str] = (),
    engine: LinkingEngine | None = None,
) -> str:
    """Return ``text`` rendered as HTML with its explorable words linked."""

    return render_decisions_html(link_decisions(text, active_word, exclusions, engine))


def stream_explanation(
    word: str,
    source: Any,
    *,
    exclusions: Iterable[str] = (),
    is_random: bool = False,
    engine: LinkingEngine | None = None,
) -> Iterator[Dict[str, Any]]:
    """Yield stream events for the explanation of ``word``.

    The engine runs over the whole accumulated text after every fragment so
    the rendered HTML always reflects everything received so far.
    """

    excluded = normalize_exclusions(exclusions)
    yield {'type': 'init', 'word': word}

    buffer: List[str] = []
    try:
        for fragment in source.stream(word, is_random=is_random):
            buffer.append(fragment)
            text = ''.join(buffer)
            yield {
                'type': 'content',
                'content': fragment,
                'html': render_linked_text(text, exclusions=excluded, engine=engine),
                'done': False,
            }
    except ContentSourceError as exc:
        logger.warning('Explanation stream for %r failed: %s', word, exc)
        yield {'type': 'error', 'word': word, 'detail': STREAM_ERROR_DETAIL}
        return

    yield {'type': 'done', 'word': word, 'content': ''.join(buffer), 'done': True}
