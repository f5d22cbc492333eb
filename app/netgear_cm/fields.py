"""
Best effort parsers for a single table cell.

Netgear firmware is not consistent about units, whitespace or even putting anything in a cell at all,
    so none of these raise. A cell that doesn't look like what we expect becomes `FieldResult(0, False)`
    and it's up to the caller to decide if that's worth logging about.

"""

import re
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

import structlog
from util.const import EVENT_TIME_FORMAT, TIME_NOT_ESTABLISHED

log = structlog.get_logger(__name__)

# Good enough for anything the modem has been observed to print: "-3.2", "40.9", "603000000", "1e3"
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"


class FieldResult(NamedTuple):
    """Parsed value and whether the cell actually matched. `value` is always usable."""

    value: int | float
    ok: bool


def _match_number(text: str, unit: str | None) -> str | None:
    """Returns the numeric portion of `text` if the whole cell is `<number>[ <unit>]`."""
    pattern = rf"({_NUMBER})"
    if unit is not None:
        # Unit is optional; some firmware drops it when the value is 0
        pattern += rf"(?:\s*{re.escape(unit)})?"
    if (match := re.fullmatch(pattern, text.strip(), flags=re.IGNORECASE)) is None:
        log.debug("Cell did not match expected pattern", cell=text, unit=unit)
        return None
    return match.group(1)


def parse_number(text: str, unit: str | None = None) -> FieldResult:
    """Parses `"<number>"` or `"<number> <unit>"` into a float."""
    if (number := _match_number(text, unit)) is None:
        return FieldResult(0.0, False)
    return FieldResult(float(number), True)


def parse_hz(text: str) -> FieldResult:
    """E.G.: '603000000 Hz'"""
    return parse_number(text, "Hz")


def parse_dbmv(text: str) -> FieldResult:
    """E.G.: '6.2 dBmV'"""
    return parse_number(text, "dBmV")


def parse_db(text: str) -> FieldResult:
    """E.G.: '40.5 dB'"""
    return parse_number(text, "dB")


def parse_counter(text: str) -> FieldResult:
    """Error counters are bare numbers"""
    return parse_number(text)


def parse_integer(text: str) -> FieldResult:
    """Bare integers only; '3.5' is a mismatch rather than being truncated."""
    if re.fullmatch(r"[-+]?\d+", text.strip()) is None:
        log.debug("Cell is not an integer", cell=text)
        return FieldResult(0, False)
    return FieldResult(int(text.strip()), True)


def parse_symbol_rate(text: str) -> FieldResult:
    """
    Upstream symbol rate is reported in Ksym/sec, we want sym/sec.

    Done in Decimal so '5.12 Ksym/sec' is 5120 and not 5120.000000000001.
    """
    if (number := _match_number(text, "Ksym/sec")) is None:
        return FieldResult(0.0, False)
    return FieldResult(float(Decimal(number) * 1000), True)


def hz_to_mhz(hz: float) -> float:
    """603000000 -> 603.0"""
    return float(Decimal(str(hz)) / Decimal(1_000_000))


def format_mhz(hz: float) -> str:
    """603000000 -> '603.00 MHz'; only used for the legacy `frequency` label."""
    return f"{hz / 1e6:0.2f} MHz"


def parse_event_time(text: str) -> datetime | None:
    """
    Turns the event log timestamp into a (naive, modem local) datetime.

    Input ends up being something like:
        '2019-04-21, 16:27:07'
            or, before the modem has synced with the CMTS
        'Time Not Established'

    Both the sentinel and garbage come back as None; only garbage is worth a warning.
    """
    text = text.strip()
    if text == TIME_NOT_ESTABLISHED:
        return None
    try:
        return datetime.strptime(text, EVENT_TIME_FORMAT)
    except ValueError:
        log.warning("Failed to parse event timestamp", raw=text, expected=EVENT_TIME_FORMAT)
        return None
