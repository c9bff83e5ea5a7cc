"""Print link diagnostics for one or more text files."""

from __future__ import annotations

from pathlib import Path

import yaml
from django.core.management.base import BaseCommand, CommandError

from wordexplorer.engine.index import dry_run
from wordexplorer.services import get_engine


class Command(BaseCommand):
    help = 'Run the linking engine over text files and print aggregate metrics as YAML.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('paths', nargs='+', help='Plain-text files to analyse.')

    def handle(self, *args, **options) -> None:
        texts = []
        for raw_path in options['paths']:
            path = Path(raw_path)
            if not path.is_file():
                raise CommandError(f'File not found: {raw_path}')
            texts.append(path.read_text(encoding='utf-8', errors='replace'))

        metrics = dry_run(texts, get_engine())
        self.stdout.write(yaml.safe_dump(metrics, sort_keys=True))
