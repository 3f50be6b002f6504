"""
Error taxonomy for the fishing log.

Everything raised on purpose by the logbook_* modules derives from
FishLogError, so the API layer can translate them in one place.
"""

from typing import Optional


class FishLogError(Exception):
    """Base class for every domain error."""


class StorageReadError(FishLogError):
    """A persisted value could not be read back (missing file, corrupt JSON).

    Collection loads recover from this locally by treating the collection as
    empty; it never reaches the user.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Could not read '{key}': {reason}")
        self.key = key
        self.reason = reason


class EntryValidationError(FishLogError, ValueError):
    """
    Raised when a new entry is missing a required field or has a bad value.

    Attributes
    ----------
    field : str or None
        Name of the offending field, so a form can focus it.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field: Optional[str] = field


class ImportRejected(FishLogError):
    """Base for backup documents refused at the preview step."""


class MalformedDocument(ImportRejected):
    """The file is not JSON, or not a JSON object."""


class EmptyDocument(ImportRejected):
    """The document parsed but every collection in it is empty."""


class NothingToImport(FishLogError):
    """Confirm was called without a previewed document."""


class ConfirmationRequired(FishLogError):
    """A destructive write was attempted without explicit confirmation."""


class ExternalServiceError(FishLogError):
    """Geocoding or forecast call failed, or came back empty."""


class UnknownRecord(FishLogError, KeyError):
    """No record with that id in the collection."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"No {collection} record with id '{record_id}'")
        self.collection = collection
        self.record_id = record_id

    def __str__(self) -> str:
        return self.args[0]
