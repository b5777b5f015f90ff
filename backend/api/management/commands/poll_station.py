"""Management command that runs a single weather station poll."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from backend.api.drivers import get_registry
from hubdrivers.config import ConfigError


class Command(BaseCommand):
    help = "Poll the Acuparse station once and print the attributes that changed"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--fields", action="store_true", help="Also print the discovered field identifiers")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        try:
            driver = get_registry().weather
        except ConfigError as exc:
            raise CommandError(f"Invalid driver configuration: {exc}") from exc
        if driver is None:
            raise CommandError("ACUPARSE_HOST is not configured")

        updates = driver.poll()
        payload: dict = {"updates": [update.as_dict() for update in updates]}
        if options.get("fields"):
            payload["discovered"] = sorted(driver.discovered_fields)
            payload["invalid_extra_fields"] = list(driver.invalid_extra_fields)
        self.stdout.write(json.dumps(payload, default=str))
