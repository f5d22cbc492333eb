"""
Per-model page layouts.

Each supported modem gets a `ModemModel` which says where the pages live, what the DOM ids of the
    channel tables are and which column holds what. The model is picked once when the scraper is built;
    nothing downstream of that ever branches on model name.

OrderedDict is used to associate the column header / position in the row with the record field the
    value should end up in and the parser that gets it there.
"""

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from netgear_cm import fields

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Column:
    """Where a cell goes. A column with no parser is copied into the record as (trimmed) text."""

    field: str
    parser: Callable[[str], fields.FieldResult] | None = None


# Downstream: Channel, Lock Status, Modulation, Channel ID, Frequency, Power, SNR, Correctables, Uncorrectables
# E.G.: ['1', 'Locked', 'QAM256', '17', '603000000 Hz', '4.9 dBmV', '40.3 dB', '12', '0']
DS_COLUMNS = OrderedDict(
    [
        ("Channel", Column("channel")),
        ("Lock Status", Column("lock_status")),
        ("Modulation", Column("modulation")),
        ("Channel ID", Column("channel_id")),
        ("Frequency", Column("frequency_hz", fields.parse_hz)),
        ("Power", Column("power_dbmv", fields.parse_dbmv)),
        ("SNR", Column("snr_db", fields.parse_db)),
        ("Correctables", Column("correctable_errors", fields.parse_counter)),
        ("Uncorrectables", Column("uncorrectable_errors", fields.parse_counter)),
    ]
)

# Upstream: Channel, Lock Status, US Channel Type, Channel ID, Symbol Rate, Frequency, Power
# E.G.: ['1', 'Locked', 'ATDMA', '2', '5120 Ksym/sec', '30600000 Hz', '44.3 dBmV']
US_COLUMNS = OrderedDict(
    [
        ("Channel", Column("channel")),
        ("Lock Status", Column("lock_status")),
        ("US Channel Type", Column("channel_type")),
        ("Channel ID", Column("channel_id")),
        ("Symbol Rate", Column("symbol_rate", fields.parse_symbol_rate)),
        ("Frequency", Column("frequency_hz", fields.parse_hz)),
        ("Power", Column("power_dbmv", fields.parse_dbmv)),
    ]
)


@dataclass(frozen=True)
class EventTableSchema:
    """Element names of the XML event table embedded in the event log page."""

    table_tag: str
    row_tag: str
    # record field -> child element tag
    fields: dict[str, str]

    @property
    def open_tag(self) -> str:
        return f"<{self.table_tag}>"

    @property
    def close_tag(self) -> str:
        return f"</{self.table_tag}>"


DOCS_DEV_EVENT_TABLE = EventTableSchema(
    table_tag="docsDevEventTable",
    row_tag="tr",
    fields={
        "index": "docsDevEvIndex",
        "first_time": "docsDevEvFirstTime",
        "last_time": "docsDevEvLastTime",
        "count": "docsDevEvCounts",
        "level": "docsDevEvLevel",
        "event_id": "docsDevEvId",
        "text": "docsDevEvText",
    },
)


@dataclass(frozen=True)
class ModemModel:
    name: str
    status_path: str = "/DocsisStatus.asp"
    event_path: str = "/EventLog.asp"
    downstream_table_id: str = "dsTable"
    upstream_table_id: str = "usTable"
    downstream_columns: OrderedDict[str, Column] = field(default_factory=lambda: DS_COLUMNS)
    upstream_columns: OrderedDict[str, Column] = field(default_factory=lambda: US_COLUMNS)
    event_table: EventTableSchema = DOCS_DEV_EVENT_TABLE


# The CM600 and CM1000 serve the same pages and table ids. The CM1000 also has OFDM tables
#   but those have a different column layout and aren't scraped.
MODELS = {
    "CM600": ModemModel(name="CM600"),
    "CM1000": ModemModel(name="CM1000"),
}

DEFAULT_MODEL = "CM600"


def get_modem_model(name: str | None) -> ModemModel:
    """Looks up a model by name, falling back to the CM600 layout if we don't know it."""
    if name is not None and (model := MODELS.get(name.strip().upper())) is not None:
        return model
    log.warning(
        "Unknown modem model, falling back to default",
        model=name,
        default=DEFAULT_MODEL,
        known=list(MODELS),
    )
    return MODELS[DEFAULT_MODEL]
