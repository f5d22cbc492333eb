import asyncio
import threading
import time

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from netgear_cm.models import get_modem_model
from netgear_cm.scrape import ModemScraper
from prometheus_client import REGISTRY

# Trimmed down copy of a CM1000 DocsisStatus.asp after the page's JS has filled in the tables.
# Channel 3 is a not-locked channel with a garbage power cell.
STATUS_HTML = """
<html>
<head><title>NETGEAR Gateway CM1000</title></head>
<body>
<table id="startup_procedure_table"><tr><td>Startup Procedure</td></tr></table>
<table id="dsTable" cellpadding="0" cellspacing="0" width="100%">
<tbody>
<tr><td>Channel</td><td>Lock Status</td><td>Modulation</td><td>Channel ID</td><td>Frequency</td><td>Power</td><td>SNR</td><td>Correctables</td><td>Uncorrectables</td></tr>
<tr><td>1</td><td>Locked</td><td>QAM256</td><td>17</td><td>603000000 Hz</td><td>4.9 dBmV</td><td>40.3 dB</td><td>12</td><td>0</td></tr>
<tr><td>2</td><td>Locked</td><td>QAM256</td><td>18</td><td>609000000 Hz</td><td>-1.2 dBmV</td><td>39.8 dB</td><td>7</td><td>1</td></tr>
<tr><td>3</td><td>Not Locked</td><td>Unknown</td><td>0</td><td>0 Hz</td><td>-- dBmV</td><td>0 dB</td><td>0</td><td>0</td></tr>
</tbody>
</table>
<table id="usTable" cellpadding="0" cellspacing="0" width="100%">
<tbody>
<tr><td>Channel</td><td>Lock Status</td><td>US Channel Type</td><td>Channel ID</td><td>Symbol Rate</td><td>Frequency</td><td>Power</td></tr>
<tr><td>1</td><td>Locked</td><td>ATDMA</td><td>2</td><td>5120 Ksym/sec</td><td>30600000 Hz</td><td>44.3 dBmV</td></tr>
<tr><td>2</td><td>Locked</td><td>ATDMA</td><td>1</td><td>2560 Ksym/sec</td><td>24000000 Hz</td><td>43.8 dBmV</td></tr>
</tbody>
</table>
</body>
</html>
"""

LOGIN_HTML = """
<html><head><title>Login</title></head><body><form action="/goform/Login"></form></body></html>
"""


def event_row(index, first_time, text, level="3", event_id=82000200, count=1):
    return (
        "<tr>"
        f"<docsDevEvIndex>{index}</docsDevEvIndex>"
        f"<docsDevEvFirstTime>{first_time}</docsDevEvFirstTime>"
        f"<docsDevEvLastTime>{first_time}</docsDevEvLastTime>"
        f"<docsDevEvCounts>{count}</docsDevEvCounts>"
        f"<docsDevEvLevel>{level}</docsDevEvLevel>"
        f"<docsDevEvId>{event_id}</docsDevEvId>"
        f"<docsDevEvText>{text}</docsDevEvText>"
        "</tr>"
    )


def event_page(*rows):
    """EventLog.asp: an HTML page with the XML event table dumped in the middle of a script block."""
    return (
        "<html><head><title>NETGEAR Gateway CM1000</title>\n"
        "<script>\nvar xmlFormat = '<?xml version=\"1.0\"?>';\n</script></head>\n"
        "<body><table id=\"EventLogTable\"><tr><td>Time</td><td>Priority</td><td>Description</td></tr></table>\n"
        f"<docsDevEventTable>{''.join(rows)}</docsDevEventTable>\n"
        "</body></html>"
    )


def sample(name, **labels):
    """Current value of a metric in the default registry; 0 if it was never touched."""
    return REGISTRY.get_sample_value(name, labels) or 0.0


class FakeModem:
    """Serves DocsisStatus.asp / EventLog.asp and remembers every request it saw."""

    def __init__(self):
        self.pages = {
            "/DocsisStatus.asp": (200, STATUS_HTML),
            "/EventLog.asp": (200, event_page()),
        }
        self.delay = 0.0
        # (path, start, end, authorization header)
        self.requests = []
        self.address = None

    def set_page(self, path, body, status=200):
        self.pages[path] = (status, body)

    async def handle(self, request):
        start = time.monotonic()
        await asyncio.sleep(self.delay)
        status, body = self.pages.get(request.path, (404, "Not Found"))
        self.requests.append(
            (request.path, start, time.monotonic(), request.headers.get("Authorization"))
        )
        return web.Response(status=status, text=body, content_type="text/html")


def fake_modem_server(modem):
    app = web.Application()
    app.router.add_get("/{page}", modem.handle)
    return TestServer(app)


@pytest.fixture
async def fake_modem():
    modem = FakeModem()
    server = fake_modem_server(modem)
    await server.start_server()
    modem.address = f"{server.host}:{server.port}"
    yield modem
    await server.close()


@pytest.fixture
async def scraper(fake_modem):
    _scraper = ModemScraper(
        fake_modem.address,
        "admin",
        "password",
        get_modem_model("CM1000"),
        timeout=2,
    )
    yield _scraper
    await _scraper.close()


@pytest.fixture
def background_loop():
    """An event loop running in its own thread, the way main() runs next to the metrics server."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()


@pytest.fixture
def threaded_modem(background_loop):
    """A FakeModem served from the background loop, for tests that drive it through the collector."""
    modem = FakeModem()
    server = fake_modem_server(modem)
    asyncio.run_coroutine_threadsafe(server.start_server(), background_loop).result(timeout=5)
    modem.address = f"{server.host}:{server.port}"
    yield modem
    asyncio.run_coroutine_threadsafe(server.close(), background_loop).result(timeout=5)


@pytest.fixture
def threaded_scraper(threaded_modem, background_loop):
    _scraper = ModemScraper(
        threaded_modem.address,
        "admin",
        "password",
        get_modem_model("CM1000"),
        timeout=2,
    )
    yield _scraper
    asyncio.run_coroutine_threadsafe(_scraper.close(), background_loop).result(timeout=5)
