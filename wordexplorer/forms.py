"""Forms for the word explorer app.

The forms validate the words readers ask to explore, the text sent for
linking and history search queries.
"""

from __future__ import annotations

import re

from django import forms

WORD_PATTERN = re.compile(r"^[A-Za-z][A-Za-z' \-]*$")


class ExploreForm(forms.Form):
    """Form used to request an explanation for a single word."""

    word = forms.CharField(
        max_length=100,
        label='Word',
        help_text='The word or short phrase to explore.',
        error_messages={'required': 'Word is required'},
    )

    def clean_word(self) -> str:
        word = ' '.join(self.cleaned_data['word'].split())
        if not WORD_PATTERN.match(word):
            raise forms.ValidationError('Words may only contain letters, spaces, hyphens and apostrophes.')
        return word


class LinksForm(forms.Form):
    """Form used to compute link decisions for a block of text."""

    text = forms.CharField(required=False, strip=False, label='Text')
    active_word = forms.CharField(required=False, max_length=100, label='Active word')
    exclusions = forms.CharField(
        required=False,
        label='Excluded words',
        help_text='Words that must never be linked, separated by commas or new lines.',
    )
    fallback = forms.BooleanField(required=False, label='Plain links')

    def clean_exclusions(self) -> list[str]:
        """Parse comma or newline separated words into a lowercase list."""

        raw_value = self.cleaned_data.get('exclusions', '')
        if not raw_value:
            return []
        parsed: list[str] = []
        for piece in re.split(r"[,\n]", raw_value):
            word = piece.strip().lower()
            if word and word not in parsed:
                parsed.append(word)
        return parsed


class HistorySearchForm(forms.Form):
    """Query box for searching the exploration history."""

    q = forms.CharField(required=False, max_length=100, label='Search')
