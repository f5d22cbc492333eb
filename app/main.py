#!/usr/bin/env python3
"""
Main / entry point for the Netgear CM family of modem exporter.

"""
import asyncio
from os import getenv

import structlog
from netgear_cm.collector import ModemCollector
from netgear_cm.events import EventLogSink
from netgear_cm.models import get_modem_model
from netgear_cm.scrape import ModemScraper
from prometheus_client import REGISTRY, start_http_server
from util.const import LogLevel

# cfg-file/arg-arse/clip is overkill for the few things that need to be configured.
# k8s makes it trivial to define env-vars so we'll just use that.
##
MODEM_ADDRESS = getenv("MODEM_ADDRESS", "192.168.100.1")
MODEM_USERNAME = getenv("MODEM_USERNAME", "admin")
# Password is printed on the sticker; impossible to guess so require user provides
MODEM_PASSWORD = getenv("MODEM_PASSWORD", None)
MODEM_MODEL = getenv("MODEM_MODEL", "CM600")

# default prometheus_client implementation does not support setting the path, only the port.
METRICS_PORT = int(getenv("METRICS_PORT", "9527"))
# Two pages at up to 30s each, plus some slack for waiting on a poll that's already running
COLLECT_TIMEOUT_SECONDS = float(getenv("COLLECT_TIMEOUT_SECONDS", "75"))

# Optional; new events are appended here as "[time] level - text"
EVENT_LOG_FILE = getenv("EVENT_LOG_FILE", None)
FREQUENCY_LABEL = getenv("FREQUENCY_LABEL", "false").lower() in ("1", "true", "yes")


if getenv("LOG_LEVEL") not in LogLevel.__members__ or getenv("LOG_LEVEL") is None:
    print(f"Defaulting to {LogLevel.INFO} log level")
    log_level = LogLevel.INFO
else:
    log_level = LogLevel[getenv("LOG_LEVEL")]  # type: ignore
    print(f"Using log level {log_level.value}")


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(log_level.value)
)

log = structlog.get_logger(__name__)


async def main():
    """Main entry point."""
    log.info("Starting up")
    # Check that user set auth
    if MODEM_USERNAME is None or MODEM_PASSWORD is None:
        log.error("Missing MODEM_USERNAME or MODEM_PASSWORD")
        return

    event_sink = None
    if EVENT_LOG_FILE is not None:
        log.info("Appending modem events to file", path=EVENT_LOG_FILE)
        event_sink = EventLogSink(EVENT_LOG_FILE)

    scraper = ModemScraper(
        MODEM_ADDRESS,
        MODEM_USERNAME,
        MODEM_PASSWORD,
        get_modem_model(MODEM_MODEL),
        event_sink=event_sink,
    )
    log.debug("Modem configured", address=MODEM_ADDRESS, model=scraper.model.name)

    # Modem is only polled when something scrapes us; the collector hands each poll to this loop
    REGISTRY.register(
        ModemCollector(
            [scraper],
            asyncio.get_running_loop(),
            timeout=COLLECT_TIMEOUT_SECONDS,
            frequency_label=FREQUENCY_LABEL,
        )
    )

    # In testing, server responds to requests on / and /metrics so there's no real
    #   need to allow customizing the path, I think.
    server, _ = start_http_server(port=METRICS_PORT)
    log.info("Metrics server started", server=server.server_address)

    try:
        # Nothing to do here; all the work happens when the metrics server calls into the collector
        await asyncio.Event().wait()
    finally:
        await scraper.close()
        if event_sink is not None:
            event_sink.close()


if __name__ == "__main__":
    asyncio.run(main())
