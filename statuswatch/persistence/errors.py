"""
Status store and settings errors.

Raised out of a poll or cleanup cycle, any of these aborts that cycle only;
the runner logs it and the next scheduled firing retries.
"""


class PersistenceError(Exception):
    """The status store or the settings document could not be used."""

    pass


class SchemaError(PersistenceError):
    """The status database could not be created or is from a newer release."""

    pass


class LoadError(PersistenceError):
    """Reading status records from the database failed."""

    pass


class SaveError(PersistenceError):
    """Writing or deleting status records failed; the transaction was rolled back."""

    pass


class SettingsError(PersistenceError):
    """Settings document is unreadable or invalid."""

    pass
