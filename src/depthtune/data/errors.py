"""Exceptions raised while loading tuning and content definitions."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """A definition file is missing, unreadable, or not valid JSON."""


class DataValidationError(DataError):
    """A definition file parsed but its structure or value types are wrong."""


class DataReferenceError(DataError):
    """A definition points at an id that no other definition provides."""
