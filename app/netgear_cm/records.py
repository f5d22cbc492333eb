"""
Typed records built from raw table rows.

Records are built fresh on every poll and never modified afterwards.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

import structlog
from netgear_cm import fields
from netgear_cm.models import Column

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DownstreamChannel:
    channel: str
    lock_status: str
    modulation: str
    channel_id: str
    frequency_hz: float
    power_dbmv: float
    snr_db: float
    correctable_errors: float
    uncorrectable_errors: float

    @property
    def frequency_mhz(self) -> float:
        return fields.hz_to_mhz(self.frequency_hz)

    @property
    def frequency_label(self) -> str:
        return fields.format_mhz(self.frequency_hz)


@dataclass(frozen=True)
class UpstreamChannel:
    channel: str
    lock_status: str
    channel_type: str
    channel_id: str
    # sym/sec, already converted from the Ksym/sec the modem shows
    symbol_rate: float
    frequency_hz: float
    power_dbmv: float

    @property
    def frequency_mhz(self) -> float:
        return fields.hz_to_mhz(self.frequency_hz)

    @property
    def frequency_label(self) -> str:
        return fields.format_mhz(self.frequency_hz)


@dataclass(frozen=True)
class EventRecord:
    index: int
    # None if the modem had no clock ("Time Not Established") or the text was garbage
    first_time: datetime | None
    first_time_raw: str
    last_time: datetime | None
    last_time_raw: str
    count: int
    level: str
    event_id: int
    text: str

    def effective_time(self, high_water_mark: datetime) -> datetime:
        """Events without a usable timestamp sort alongside the last event we know the time of."""
        if self.first_time is None:
            return high_water_mark
        return self.first_time

    def log_line(self) -> str:
        return f"[{self.first_time_raw}] {self.level} - {self.text}\n"


@dataclass
class ScrapeSnapshot:
    """Everything one poll of one modem produced."""

    modem: str
    downstream: list[DownstreamChannel] = field(default_factory=list)
    upstream: list[UpstreamChannel] = field(default_factory=list)
    events: list[EventRecord] = field(default_factory=list)


Record = TypeVar("Record", DownstreamChannel, UpstreamChannel)


def build_channel_record(
    cells: list[str],
    columns: OrderedDict[str, Column],
    record_cls: type[Record],
    row_idx: int,
) -> Record:
    """Maps cell positions onto record fields.

    A short row is treated as if the missing cells were empty: text fields come back "" and numeric
        fields come back zero. A cell that fails to parse zeroes that field only.
    """
    if len(cells) != len(columns):
        log.warning(
            "Unexpected number of columns for row",
            row_idx=row_idx,
            expected=len(columns),
            got=len(cells),
            data=cells,
        )

    values = {}
    for col_idx, (header, column) in enumerate(columns.items()):
        cell = cells[col_idx] if col_idx < len(cells) else ""
        if column.parser is None:
            values[column.field] = cell
            continue

        result = column.parser(cell)
        if not result.ok:
            log.warning(
                "Failed to parse cell, defaulting to zero",
                row_idx=row_idx,
                column=header,
                cell=cell,
            )
        values[column.field] = result.value
    return record_cls(**values)


def build_channel_records(
    rows: list[list[str]],
    columns: OrderedDict[str, Column],
    record_cls: type[Record],
) -> list[Record]:
    """Device channel order is kept as-is."""
    return [
        build_channel_record(row, columns, record_cls, idx) for idx, row in enumerate(rows)
    ]


def build_event_record(row: dict[str, str], row_idx: int) -> EventRecord:
    """Builds an event from one `<tr>` of the event table (already flattened to field -> text)."""

    def _int(name: str) -> int:
        result = fields.parse_integer(row.get(name, ""))
        if not result.ok:
            log.warning(
                "Failed to parse event field, defaulting to zero",
                row_idx=row_idx,
                field=name,
                raw=row.get(name, ""),
            )
        return int(result.value)

    first_time_raw = row.get("first_time", "")
    last_time_raw = row.get("last_time", "")
    return EventRecord(
        index=_int("index"),
        first_time=fields.parse_event_time(first_time_raw),
        first_time_raw=first_time_raw,
        last_time=fields.parse_event_time(last_time_raw),
        last_time_raw=last_time_raw,
        count=_int("count"),
        level=row.get("level", ""),
        event_id=_int("event_id"),
        text=row.get("text", ""),
    )
