"""Shared fixtures for linking engine tests."""

from __future__ import annotations

import pytest

from wordexplorer.engine.config import load_config
from wordexplorer.engine.index import LinkingEngine
from wordexplorer.engine.lexicon import build_tables

SAMPLE_TEXT = "The quantum theory of consciousness fascinates philosophers."


@pytest.fixture()
def engine_config():
    """Provide a mutable copy of the default engine configuration."""

    return load_config(None)


@pytest.fixture()
def tables():
    return build_tables()


@pytest.fixture()
def engine(engine_config):
    return LinkingEngine.from_config(engine_config)


def linked_words(decisions):
    return [decision.text for decision in decisions if decision.linkable]
