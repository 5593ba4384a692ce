"""Logging setup with an additional TRACE level."""

import logging

# Custom TRACE level
logging.TRACE = 5
logging.addLevelName(logging.TRACE, "TRACE")


# Add trace method to standard Logger class for all instances
def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(logging.TRACE):
        self._log(logging.TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method


def configure_logging(log_level_str: str) -> None:
    """Configure the root logger once, honouring the TRACE and VERBOSE pseudo levels."""
    log_level_str = log_level_str.upper()
    log_level = logging.TRACE if log_level_str == "TRACE" else getattr(logging, log_level_str, logging.INFO)
    if logging.getLogger().hasHandlers():
        return

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )

    root = logging.getLogger()

    if log_level_str == "VERBOSE":
        root_level = logging.DEBUG
        importer_level = logging.TRACE
        sqlalchemy_level = logging.INFO
        root.info("VERBOSE mode enabled: row level traces active for debugging.")
    elif log_level_str == "TRACE":
        root_level = logging.TRACE
        importer_level = logging.TRACE
        sqlalchemy_level = logging.INFO
    else:
        root_level = log_level
        importer_level = log_level
        sqlalchemy_level = logging.WARNING

    root.setLevel(root_level)
    logging.getLogger("sqlalchemy.engine").setLevel(sqlalchemy_level)
    logging.getLogger("kimai_import.adapters").setLevel(importer_level)
    logging.getLogger("kimai_import.services").setLevel(importer_level)

    root.trace("Trace logging enabled at startup (verbose details).") if log_level_str == "TRACE" else root.debug("Debug logging enabled at startup.")
