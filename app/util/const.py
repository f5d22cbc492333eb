import logging
from enum import Enum

# Unlikely that the modem cares but it's easy enough to pretend to be a browser just in case.
# Netgear firmware chokes on brotli so only ask for what it can actually do.
REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:123.4) Gecko/20100101 Firefox/123.4",
    "Accept": "text/html,application/xhtml+xml,*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}

# Hard ceiling for each page fetch; a slow modem counts as a transport failure.
REQUEST_TIMEOUT_SECONDS = 30

# Event log timestamps look like "2019-04-21, 16:27:07"
EVENT_TIME_FORMAT = "%Y-%m-%d, %H:%M:%S"
# What the modem reports before it has picked up time-of-day from the CMTS
TIME_NOT_ESTABLISHED = "Time Not Established"


class LogLevel(Enum):
    """Simple enum of supported log levels for easy validation"""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
