class TablegateError(Exception):
    """Base exception for tablegate errors."""


class BadRequestError(TablegateError):
    """A required request parameter is missing or malformed."""


class MissingParameterError(BadRequestError):
    """An id-scoped operation was called without an id."""


class StoreError(TablegateError):
    """Any failure while executing a statement against the store."""


class UnknownTableError(StoreError):
    """The table name is not present in the live catalog."""


class UnknownColumnError(StoreError):
    """The payload names columns that the table does not declare."""


class ConstraintViolationError(StoreError):
    """The store rejected a statement because of a schema constraint."""


class CounterError(TablegateError):
    """Usage counter could not be read or persisted."""
