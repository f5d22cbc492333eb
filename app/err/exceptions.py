"""Simple wrappers for the failure states that can stop a page from being scraped"""


class TransportError(Exception):
    """Exception for network level failures talking to the modem (refused, reset, timed out...)."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, status_code, payload)


class ModemNotOkError(TransportError):
    """Exception for non-200/OK responses from modem."""


class SchemaParseError(Exception):
    """The event table island was found but is not the XML we expect."""

    def __init__(self, message, payload=None):
        super().__init__(message, payload)
