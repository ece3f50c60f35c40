"""Domain-specific exceptions for the dine-in analytics pipeline.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from DineInError for easy catching.
"""


class DineInError(Exception):
    """Base exception for all dine-in analytics errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ConfigError(DineInError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - A filter value is not recognized (day type, item type, min mains)
    - A date bound is not in YYYY-MM-DD format
    - Required blob store settings are missing from the environment
    """

    pass


class DataQualityError(DineInError):
    """Raised when an input file cannot be turned into rows.

    This exception is raised when:
    - The CSV text cannot be decoded
    - The CSV has no header row

    Bad values inside a decoded file never raise; they are safe-parsed.
    """

    pass


class StorageError(DineInError):
    """Raised when the blob store cannot serve a request.

    This exception is raised when:
    - Network connection to the blob store fails
    - The store answers with a non-2xx status
    - The store returns an unexpected payload
    """

    pass
