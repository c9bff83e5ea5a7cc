"""Database models for the word explorer app.

The app keeps a per-session history of explored words. Each word appears at
most once per session: exploring it again refreshes the stored preview and
timestamp and bumps its visit counter.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class Exploration(models.Model):
    """A word explored within a browser session."""

    session_key = models.CharField(max_length=40, db_index=True)
    word = models.CharField(max_length=100)
    content_preview = models.TextField(blank=True)
    visits = models.PositiveIntegerField(default=1)
    explored_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('session_key', 'word')
        ordering = ['-explored_at', '-id']

    def __str__(self) -> str:  # pragma: no cover - convenience display
        return f"{self.word} · {self.explored_at:%Y-%m-%d %H:%M}"
