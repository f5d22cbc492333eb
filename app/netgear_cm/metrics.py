"""All the boiler plate / init code for the exporter's own (meta) metrics.

Channel and event metrics are NOT defined here; they only exist for the duration of a single collection
    and are built by the collector straight from the poll snapshot. See collector.py.
"""

from prometheus_client import Counter, Gauge, Summary, disable_created_metrics

# By default, client will automatically create a "_created" meta metric for
#   each metric defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()


METRICS_NS = "netgear_cm"
META_NS = "meta"

##
# Meta Metrics
##
# How long are we spending waiting on the modem?
# summary comes with both a count and a sum so we don't need to count the number of requests ourselves
s_meta_scrape_time = Summary(
    f"{META_NS}_request_duration_seconds",
    "Time spent waiting for modem to respond",
    # We only scrape a couple of pages so we can index by the page
    labelnames=["modem", "scrape_target"],
)

# Scraping a couple of pages and possible HTTP codes is bounded (401 and 200 are all anyone has seen)
#   so we're not going to blow up storage by doing this.
c_meta_scrape_result = Counter(
    f"{META_NS}_scrape_result",
    "Count of HTTP results per scraped page",
    labelnames=["modem", "http_code", "scrape_target"],
)

# Time to parse returned HTML isn't interesting but am interested in parse errors
c_meta_parse_result = Counter(
    f"{META_NS}_parse_result",
    "Count of successful vs failed parse attempts",
    labelnames=["modem", "parse_target", "parse_result"],
)

##
# Scrape bookkeeping
##
c_scrapes = Counter(
    f"{METRICS_NS}_scrapes",
    "Total number of scrapes of a modem page.",
    labelnames=["modem", "page"],
)

c_scrape_errors = Counter(
    f"{METRICS_NS}_scrape_errors",
    "Total number of failed scrapes of a modem page.",
    labelnames=["modem", "page"],
)

c_events_emitted = Counter(
    f"{METRICS_NS}_events_emitted",
    "Total number of event log entries emitted after de-duplication.",
    labelnames=["modem"],
)

# Mostly for debugging the de-dupe; should only ever go up
g_event_high_water_mark = Gauge(
    f"{METRICS_NS}_event_high_water_mark_seconds",
    "Modem local time of the newest event emitted so far.",
    labelnames=["modem"],
)
