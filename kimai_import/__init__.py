"""Import of CSV/JSON exports and Kimai v1 databases into a Kimai store."""

__version__ = "1.0.0"

from kimai_import import logging_config  # noqa: E402,F401  registers the TRACE level
