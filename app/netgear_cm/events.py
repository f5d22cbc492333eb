"""
Turns the overlapping event window the modem returns on every poll into a stream where each event shows up once.

The modem always hands back its most recent N events, oldest first, no matter what we've already seen.
The only thing standing between that and duplicate events is the high-water mark: the time of the newest
    event we've emitted so far.
"""

import os
from datetime import datetime

import structlog
from netgear_cm.records import EventRecord

log = structlog.get_logger(__name__)

# Nothing emitted yet; every real timestamp is after this.
NO_EMISSION_YET = datetime.min


class EventDedupState:
    """High-water mark for one modem. Only ever touched while holding that modem's poll lock."""

    def __init__(self):
        self.high_water_mark = NO_EMISSION_YET

    def filter_new(self, records: list[EventRecord]) -> list[EventRecord]:
        """Returns the records that weren't emitted on a previous poll and advances the mark.

        A record is new if its time is strictly after the mark as it stood when this poll started.
        Comparing against the starting mark rather than a running one means several events logged in the
            same second of the same poll all get through.
        Records without a usable first time take the current mark as their time, so they never count as
            new and never move the mark.
        """
        baseline = self.high_water_mark
        newest = baseline
        emitted = []
        for idx, record in enumerate(records):
            effective = record.effective_time(newest)
            if record.first_time is None or not effective > baseline:
                log.debug(
                    "Suppressing event",
                    row_idx=idx,
                    index=record.index,
                    first_time=record.first_time_raw,
                    high_water_mark=baseline,
                )
                continue
            emitted.append(record)
            newest = max(newest, effective)

        self.high_water_mark = newest
        if emitted:
            log.info(
                "New events", count=len(emitted), high_water_mark=self.high_water_mark
            )
        return emitted


class EventLogSink:
    """Appends emitted events to a plain text file, one line per event."""

    def __init__(self, path: str):
        self.path = path
        self._fh = open(path, "a", encoding="utf-8")

    def write(self, records: list[EventRecord]) -> None:
        if not records:
            return
        for record in records:
            self._fh.write(record.log_line())
        # Each batch is on disk before the poll lock is released
        self._fh.flush()
        os.fsync(self._fh.fileno())

    def close(self) -> None:
        self._fh.close()
