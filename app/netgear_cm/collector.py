"""
Custom collector that polls the modem(s) on demand whenever /metrics is scraped.

prometheus_client calls collect() from its HTTP server thread while the scrapers live on the asyncio loop
    in the main thread, so every poll is handed over to that loop and waited on from here.
"""

import asyncio
import concurrent.futures
from collections.abc import Iterable, Iterator

import structlog
from netgear_cm import fields
from netgear_cm.metrics import METRICS_NS
from netgear_cm.records import ScrapeSnapshot
from netgear_cm.scrape import ModemScraper
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

log = structlog.get_logger(__name__)


class ModemCollector:
    def __init__(
        self,
        scrapers: Iterable[ModemScraper],
        loop: asyncio.AbstractEventLoop,
        timeout: float,
        frequency_label: bool = False,
    ):
        self.scrapers = list(scrapers)
        self.loop = loop
        self.timeout = timeout
        # Older dashboards grouped on a "603.00 MHz" style label; off unless asked for
        self.frequency_label = frequency_label

    def describe(self):
        # Returning an empty list keeps REGISTRY.register() from calling collect() (and polling the modem)
        return []

    def collect(self) -> Iterator[Metric]:
        # Different modems don't share anything so start them all before waiting on any
        futures = [
            (scraper, asyncio.run_coroutine_threadsafe(scraper.poll(), self.loop))
            for scraper in self.scrapers
        ]

        snapshots = []
        for scraper, future in futures:
            try:
                snapshots.append(future.result(timeout=self.timeout))
            except concurrent.futures.TimeoutError:
                # A poll still queued behind another never starts; one already talking to the modem finishes
                future.cancel()
                log.error(
                    "Timed out waiting for modem poll",
                    modem=scraper.address,
                    timeout=self.timeout,
                )
            # pylint: disable=broad-exception-caught
            except Exception as e:
                _e = "Unforeseen exception while polling modem. Treating as non-fatal."
                log.error(_e, modem=scraper.address, error=e)

        yield from self.build_metrics(snapshots)

    def build_metrics(self, snapshots: list[ScrapeSnapshot]) -> Iterator[Metric]:
        """Turns poll snapshots into metric families."""
        ds_labels = ["modem", "channel", "lock_status", "modulation", "channel_id"]
        us_labels = ["modem", "channel", "lock_status", "channel_type", "channel_id"]
        if self.frequency_label:
            ds_labels.append("frequency")
            us_labels.append("frequency")

        ds_freq = GaugeMetricFamily(
            f"{METRICS_NS}_downstream_channel_frequency_mhz",
            "Downstream channel center frequency in MHz.",
            labels=ds_labels,
        )
        ds_power = GaugeMetricFamily(
            f"{METRICS_NS}_downstream_channel_power_dbmv",
            "Downstream channel power in dBmV.",
            labels=ds_labels,
        )
        ds_snr = GaugeMetricFamily(
            f"{METRICS_NS}_downstream_channel_snr_db",
            "Downstream channel signal to noise ratio in dB.",
            labels=ds_labels,
        )
        ds_corr = CounterMetricFamily(
            f"{METRICS_NS}_downstream_channel_correctable_errors",
            "Downstream channel correctable errors.",
            labels=ds_labels,
        )
        ds_uncorr = CounterMetricFamily(
            f"{METRICS_NS}_downstream_channel_uncorrectable_errors",
            "Downstream channel uncorrectable errors.",
            labels=ds_labels,
        )

        us_freq = GaugeMetricFamily(
            f"{METRICS_NS}_upstream_channel_frequency_mhz",
            "Upstream channel center frequency in MHz.",
            labels=us_labels,
        )
        us_power = GaugeMetricFamily(
            f"{METRICS_NS}_upstream_channel_power_dbmv",
            "Upstream channel power in dBmV.",
            labels=us_labels,
        )
        us_symbol_rate = GaugeMetricFamily(
            f"{METRICS_NS}_upstream_channel_symbol_rate",
            "Upstream channel symbol rate per second.",
            labels=us_labels,
        )

        # index keeps two otherwise identical events from the same poll apart
        ev_labels = ["modem", "index", "time", "priority", "description"]
        ev_time = GaugeMetricFamily(
            f"{METRICS_NS}_event_time_seconds",
            "Time of the event (modem local time).",
            labels=ev_labels,
        )
        ev_priority = GaugeMetricFamily(
            f"{METRICS_NS}_event_priority",
            "Priority of the event.",
            labels=ev_labels,
        )
        ev_count = GaugeMetricFamily(
            f"{METRICS_NS}_event_occurrences",
            "Number of times the modem has seen the event.",
            labels=ev_labels,
        )

        for snapshot in snapshots:
            for ds in snapshot.downstream:
                labels = [snapshot.modem, ds.channel, ds.lock_status, ds.modulation, ds.channel_id]
                if self.frequency_label:
                    labels.append(ds.frequency_label)
                ds_freq.add_metric(labels, ds.frequency_mhz)
                ds_power.add_metric(labels, ds.power_dbmv)
                ds_snr.add_metric(labels, ds.snr_db)
                ds_corr.add_metric(labels, ds.correctable_errors)
                ds_uncorr.add_metric(labels, ds.uncorrectable_errors)

            for us in snapshot.upstream:
                labels = [snapshot.modem, us.channel, us.lock_status, us.channel_type, us.channel_id]
                if self.frequency_label:
                    labels.append(us.frequency_label)
                us_freq.add_metric(labels, us.frequency_mhz)
                us_power.add_metric(labels, us.power_dbmv)
                us_symbol_rate.add_metric(labels, us.symbol_rate)

            # Only events that are new as of this poll; anything older went out on a previous scrape
            for event in snapshot.events:
                labels = [snapshot.modem, str(event.index), event.first_time_raw, event.level, event.text]
                # filter_new() never emits events without a first time so this is always set
                if event.first_time is not None:
                    ev_time.add_metric(labels, event.first_time.timestamp())
                ev_priority.add_metric(labels, fields.parse_integer(event.level).value)
                ev_count.add_metric(labels, event.count)

        yield from (ds_freq, ds_power, ds_snr, ds_corr, ds_uncorr)
        yield from (us_freq, us_power, us_symbol_rate)
        yield from (ev_time, ev_priority, ev_count)

