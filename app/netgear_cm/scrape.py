"""
Implementation of the per-modem scrape: fetch the pages, pull the tables out and de-dupe the event log.
"""

import asyncio

import aiohttp
import structlog
from aiohttp import BasicAuth, ClientSession, ClientTimeout, CookieJar
from bs4 import BeautifulSoup
from err.exceptions import ModemNotOkError, SchemaParseError, TransportError
from netgear_cm import metrics, parse
from netgear_cm.events import NO_EMISSION_YET, EventDedupState, EventLogSink
from netgear_cm.models import ModemModel
from netgear_cm.records import (
    DownstreamChannel,
    EventRecord,
    ScrapeSnapshot,
    UpstreamChannel,
    build_channel_records,
    build_event_record,
)
from structlog.contextvars import bound_contextvars
from util.const import REQUEST_HEADERS, REQUEST_TIMEOUT_SECONDS

log = structlog.get_logger(__name__)

STATUS_PAGE = "status"
EVENTS_PAGE = "events"


class ModemScraper:
    """
    Everything needed to poll one modem: the HTTP session, the event high-water mark and the lock
        that keeps two polls from ever talking to the modem at the same time.

    Netgear firmware does not cope well with concurrent requests to the management pages, and the
        high-water mark is only consistent if a poll sees every page through to the end. So polls are
        strictly serialised and, once started, always finish even if whoever asked for it goes away.
    """

    def __init__(
        self,
        address: str,
        username: str,
        password: str,
        model: ModemModel,
        event_sink: EventLogSink | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.address = address
        self.model = model
        self._auth = BasicAuth(username, password)
        self._timeout = ClientTimeout(total=timeout)
        self._event_sink = event_sink

        self._lock = asyncio.Lock()
        self._events = EventDedupState()
        self._session: ClientSession | None = None
        # Strong ref to the running poll so it can't be garbage collected out from under a cancelled caller
        self._inflight: asyncio.Task | None = None

    @property
    def base_url(self) -> str:
        return f"http://{self.address}"

    async def poll(self) -> ScrapeSnapshot:
        """Scrapes every page once and returns what was found.

        Cancelling while waiting for a previous poll to finish means this one never starts.
        Cancelling after that only stops the caller from waiting; the scrape itself runs to completion.
        """
        await self._lock.acquire()
        # From here the task owns the lock and releases it when it's done
        self._inflight = asyncio.create_task(self._locked_poll())
        return await asyncio.shield(self._inflight)

    async def close(self) -> None:
        async with self._lock:
            if self._session is not None and not self._session.closed:
                await self._session.close()

    async def _locked_poll(self) -> ScrapeSnapshot:
        try:
            log.debug("Starting poll", modem=self.address, model=self.model.name)
            snapshot = ScrapeSnapshot(modem=self.address)

            with bound_contextvars(modem=self.address, page=STATUS_PAGE):
                snapshot.downstream, snapshot.upstream = await self._scrape_status()

            with bound_contextvars(modem=self.address, page=EVENTS_PAGE):
                snapshot.events = await self._scrape_events()

            return snapshot
        finally:
            self._lock.release()

    def _get_session(self) -> ClientSession:
        # Session has to be created from inside the running loop so we do it on first use
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                auth=self._auth,
                base_url=self.base_url,
                headers=REQUEST_HEADERS,
                timeout=self._timeout,
                # unsafe=True: tell aiohttp to allow cookies on IP addresses
                cookie_jar=CookieJar(unsafe=True),
            )
        return self._session

    async def _get(self, page: str, path: str) -> str:
        """GETs a single page. Anything other than a 200 with a body is an exception."""
        session = self._get_session()
        with metrics.s_meta_scrape_time.labels(self.address, page).time():
            try:
                async with session.get(path) as resp:
                    metrics.c_meta_scrape_result.labels(
                        self.address, resp.status, page
                    ).inc()
                    if resp.status != 200:
                        if resp.status == 401:
                            _e = f"Modem indicated authentication details are incorrect. Status={resp.status}."
                        else:
                            _e = f"Failed to get {path}. Status={resp.status}."
                        raise ModemNotOkError(_e, resp.status)
                    # Firmware doesn't always declare a charset; don't let a stray byte kill the scrape
                    return await resp.text(errors="replace")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(f"Failed to fetch {path}: {e!r}") from e

    async def _fetch(self, page: str, path: str) -> str | None:
        """Wrapper around _get() that turns failures into a logged, counted None."""
        metrics.c_scrapes.labels(self.address, page).inc()
        try:
            return await self._get(page, path)
        except TransportError as e:
            metrics.c_scrape_errors.labels(self.address, page).inc()
            log.error("Page scrape failed", path=path, error=e)
            return None

    async def _scrape_status(
        self,
    ) -> tuple[list[DownstreamChannel], list[UpstreamChannel]]:
        if (body := await self._fetch(STATUS_PAGE, self.model.status_path)) is None:
            return [], []

        soup = BeautifulSoup(body, "html.parser")
        downstream = self._build_channels(
            soup,
            "conn_downstream",
            self.model.downstream_table_id,
            self.model.downstream_columns,
            DownstreamChannel,
        )
        upstream = self._build_channels(
            soup,
            "conn_upstream",
            self.model.upstream_table_id,
            self.model.upstream_columns,
            UpstreamChannel,
        )
        return downstream, upstream

    def _build_channels(self, soup, parse_target, table_id, columns, record_cls):
        rows = parse.extract_table_rows(soup, table_id)
        if rows is None:
            log.error("Channel table missing from page", table_id=table_id)
            metrics.c_meta_parse_result.labels(self.address, parse_target, False).inc()
            metrics.c_scrape_errors.labels(self.address, STATUS_PAGE).inc()
            return []

        metrics.c_meta_parse_result.labels(self.address, parse_target, True).inc()
        records = build_channel_records(rows, columns, record_cls)
        log.info("Parsed channel table", table_id=table_id, count=len(records))
        return records

    async def _scrape_events(self) -> list[EventRecord]:
        if (body := await self._fetch(EVENTS_PAGE, self.model.event_path)) is None:
            return []

        schema = self.model.event_table
        fragment = parse.extract_xml_island(body, schema.open_tag, schema.close_tag)
        if fragment == "":
            log.error("Event table missing from page", tag=schema.table_tag)
            metrics.c_meta_parse_result.labels(self.address, "event_log", False).inc()
            metrics.c_scrape_errors.labels(self.address, EVENTS_PAGE).inc()
            return []

        try:
            rows = parse.parse_event_table(fragment, schema)
        except SchemaParseError as e:
            # Nothing safe to salvage; skip events this poll and leave the high-water mark alone
            log.error("Event table failed to parse, skipping events", error=e)
            metrics.c_meta_parse_result.labels(self.address, "event_log", False).inc()
            metrics.c_scrape_errors.labels(self.address, EVENTS_PAGE).inc()
            return []

        metrics.c_meta_parse_result.labels(self.address, "event_log", True).inc()
        records = [build_event_record(row, idx) for idx, row in enumerate(rows)]
        new_events = self._events.filter_new(records)

        metrics.c_events_emitted.labels(self.address).inc(len(new_events))
        if (hwm := self._events.high_water_mark) > NO_EMISSION_YET:
            metrics.g_event_high_water_mark.labels(self.address).set(hwm.timestamp())

        if self._event_sink is not None and new_events:
            try:
                self._event_sink.write(new_events)
            except OSError as e:
                log.error(
                    "Failed to write events to log file",
                    path=self._event_sink.path,
                    count=len(new_events),
                    error=e,
                )
        return new_events
