"""
Generic extraction functions that pull the raw tables we're interested in out of the modem pages.
    Two flavours: real HTML tables found by DOM id, and an XML table dumped into the middle of an HTML page.

"""

import xml.etree.ElementTree as ET

import structlog
from bs4 import BeautifulSoup
from err.exceptions import SchemaParseError
from netgear_cm.models import EventTableSchema

log = structlog.get_logger(__name__)


def extract_table_rows(soup: BeautifulSoup, table_id: str) -> list[list[str]] | None:
    """Returns the trimmed cell text of every data row in the table with DOM id `table_id`.

    The first row is always the header and is skipped.
    None means the table isn't on the page at all (firmware change? login page?); an empty list
        means the table is there but has no channels in it.
    """
    if (table := soup.find(id=table_id)) is None:
        log.warning("Table not found", table_id=table_id)
        return None

    # html.parser doesn't invent a <tbody> the way a browser does, so only use it if the modem sent one
    body = table.find("tbody") or table
    rows = body.find_all("tr")
    log.debug("Rows", table_id=table_id, count=len(rows))

    data_rows = []
    for row in rows[1:]:
        cols = row.find_all("td")
        data_rows.append([col.text.strip() for col in cols])
    return data_rows


# The event log page is not valid XML (or valid HTML for that matter). Somewhere in the body there's
#   a <docsDevEventTable> ... </docsDevEventTable> block which IS valid XML.
# So we don't parse the page; we cut the island out by its delimiters and parse just that.
#
# Known limitation: a <docsDevEventTable> nested inside another one will be cut at the first closing tag.
# The modem has never been seen doing that.


def extract_xml_island(body: str, open_tag: str, close_tag: str) -> str:
    """Returns `body[open_tag ... close_tag]` inclusive, or "" if either delimiter is missing."""
    if (start := body.find(open_tag)) == -1:
        log.warning("Opening tag not found", tag=open_tag)
        return ""
    if (end := body.find(close_tag, start)) == -1:
        log.warning("Closing tag not found", tag=close_tag)
        return ""
    return body[start : end + len(close_tag)]


def parse_event_table(fragment: str, schema: EventTableSchema) -> list[dict[str, str]]:
    """Parses the XML island into one {field: text} dict per row, in document order.

    Missing child elements come back as "". Anything that isn't the table we expect raises
        SchemaParseError since there's nothing trustworthy we could salvage from it.
    """
    if fragment == "":
        return []

    try:
        root = ET.fromstring(fragment)
    except ET.ParseError as e:
        raise SchemaParseError(f"Event table is not well formed XML: {e}", fragment) from e

    if root.tag != schema.table_tag:
        raise SchemaParseError(
            f"Expected <{schema.table_tag}> but got <{root.tag}>", fragment
        )

    rows = []
    for tr in root.findall(schema.row_tag):
        row = {}
        for name, tag in schema.fields.items():
            child = tr.find(tag)
            row[name] = (child.text or "").strip() if child is not None else ""
        rows.append(row)
    log.debug("Event rows", count=len(rows))
    return rows
