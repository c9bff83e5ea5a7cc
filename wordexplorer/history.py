"""Exploration history backed by the ``Exploration`` model.

A :class:`HistoryStore` is scoped to one browser session. Repeated words
follow last-write-wins: the newest preview and timestamp replace the old
ones while the visit counter keeps growing, and the store is trimmed to the
most recent entries after every write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from .models import Exploration

DEFAULT_HISTORY_LIMIT = 100
PREVIEW_LENGTH = 500
RECENT_PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class HistoryEntry:
    """Read-only view of a stored exploration."""

    word: str
    preview: str
    timestamp: datetime
    visits: int

    @classmethod
    def from_model(cls, exploration: Exploration) -> "HistoryEntry":
        return cls(
            word=exploration.word,
            preview=exploration.content_preview,
            timestamp=exploration.explored_at,
            visits=exploration.visits,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            'word': self.word,
            'preview': self.preview,
            'timestamp': self.timestamp.isoformat(),
            'visits': self.visits,
        }


class HistoryStore:
    """Per-session get/put/clear store of explored words."""

    def __init__(self, session_key: str, max_entries: int | None = None) -> None:
        self.session_key = session_key
        self.max_entries = max_entries or getattr(settings, 'WORD_EXPLORER_HISTORY_LIMIT', DEFAULT_HISTORY_LIMIT)

    def _queryset(self) -> models.QuerySet[Exploration]:
        return Exploration.objects.filter(session_key=self.session_key)

    def get_all(self) -> List[HistoryEntry]:
        return [HistoryEntry.from_model(item) for item in self._queryset().order_by('-explored_at', '-id')]

    @transaction.atomic
    def put(self, word: str, content: str, timestamp: datetime | None = None) -> HistoryEntry:
        """Record ``word`` with a preview of ``content``; later writes win."""

        cleaned = word.strip()
        if not cleaned:
            raise ValueError('A word is required to record history.')
        explored_at = timestamp or timezone.now()
        preview = (content or '')[:PREVIEW_LENGTH]

        exploration, created = Exploration.objects.select_for_update().get_or_create(
            session_key=self.session_key,
            word=cleaned,
            defaults={'content_preview': preview, 'explored_at': explored_at},
        )
        if not created:
            exploration.content_preview = preview
            exploration.explored_at = explored_at
            exploration.visits = models.F('visits') + 1
            exploration.save(update_fields=['content_preview', 'explored_at', 'visits'])
            exploration.refresh_from_db()

        self._trim()
        return HistoryEntry.from_model(exploration)

    def clear(self) -> int:
        deleted, _ = self._queryset().delete()
        return deleted

    def word_count(self) -> int:
        return self._queryset().count()

    def explored_words(self) -> List[str]:
        return list(self._queryset().order_by('-explored_at', '-id').values_list('word', flat=True))

    def search(self, query: str, limit: int | None = None) -> List[HistoryEntry]:
        """Return entries whose word or preview contains ``query``, newest first."""

        term = (query or '').strip()
        if not term:
            return []
        matches = self._queryset().filter(
            models.Q(word__icontains=term) | models.Q(content_preview__icontains=term)
        ).order_by('-explored_at', '-id')
        if limit is not None:
            matches = matches[:limit]
        return [HistoryEntry.from_model(item) for item in matches]

    def most_explored(self, limit: int = 10) -> List[dict[str, object]]:
        rows = self._queryset().order_by('-visits', '-explored_at', '-id')[:limit]
        return [
            {'word': row.word, 'count': row.visits, 'last_explored': row.explored_at.isoformat()}
            for row in rows
        ]

    def recent(self, limit: int = 10) -> List[dict[str, object]]:
        rows = self._queryset().order_by('-explored_at', '-id')[:limit]
        return [
            {
                'word': row.word,
                'timestamp': row.explored_at.isoformat(),
                'preview': f"{row.content_preview[:RECENT_PREVIEW_LENGTH]}...",
            }
            for row in rows
        ]

    def _trim(self) -> None:
        stale_ids = list(
            self._queryset()
            .order_by('-explored_at', '-id')
            .values_list('id', flat=True)[self.max_entries:]
        )
        if stale_ids:
            Exploration.objects.filter(id__in=stale_ids).delete()
