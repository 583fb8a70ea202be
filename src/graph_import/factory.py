"""Wiring of a Bolt-backed importer from the process environment."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from dotenv import load_dotenv

from graph_import.bolt import BOLT_PROVIDER, BoltConnectionProvider
from graph_import.config import ImporterConfig, TargetConnectionSettings
from graph_import.events import EventSink, LoggingEventSink
from graph_import.importer import GraphImporter

logger = logging.getLogger(__name__)


@contextmanager
def open_importer_from_env(
    event_sink: Optional[EventSink] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[GraphImporter]:
    """Yield an importer connected to ``GRAPH_TARGET_URI``; close the driver on exit.

    A ``.env`` file in the working directory is loaded first. Variables that
    are already set take precedence.
    """
    load_dotenv()
    settings = TargetConnectionSettings.from_env()
    config = ImporterConfig.from_env(default_provider=BOLT_PROVIDER)
    provider = BoltConnectionProvider.from_uri(
        settings.uri, settings.user, settings.password, database=settings.database
    )
    logger.info(
        "Graph importer ready (cdc=%s, max_retries=%d, policy=%s)",
        config.cdc,
        config.max_retries,
        config.transient_policy.name,
    )
    try:
        yield GraphImporter(
            provider,
            event_sink or LoggingEventSink(),
            config=config,
            cancel_event=cancel_event,
        )
    finally:
        provider.close()
