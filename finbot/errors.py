"""Error taxonomy shared by the store, router and dispatcher."""

from typing import Optional


class FinbotError(Exception):
    """Base class for finbot errors."""


class StorageError(FinbotError):
    """Store unreachable, schema provisioning failed, or a query failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class DispatchError(FinbotError):
    """Conversation listing or an outbound send failed."""


class MalformedEvent(FinbotError):
    """Inbound event is missing a required field.

    Raised and caught inside the router: the step that needs the field is
    skipped. Undecodable payloads are reported as ``ParseFailure`` instead.
    """
