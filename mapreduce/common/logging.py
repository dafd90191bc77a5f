import logging
import os
import sys


class Logging:
    """
    Module loggers propagate to one stdout handler on the package logger, so a job id
    set once is stamped on every line logged while that job runs.
    """
    PACKAGE_LOGGER = "mapreduce"
    LOG_FORMAT = '%(asctime)s %(thread)d %(levelname)s %(name)s {correlation}%(message)s'
    DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        handler = Logging._package_handler()
        handler.setLevel(Logging._log_level())
        if name != Logging.PACKAGE_LOGGER and not name.startswith(f"{Logging.PACKAGE_LOGGER}."):
            name = f"{Logging.PACKAGE_LOGGER}.{name}"
        return logging.getLogger(name)

    @staticmethod
    def set_correlation_id(value: str = None, id_name: str = "JOB_ID"):
        correlation = f"{id_name}:{value} " if value else ""
        Logging._package_handler().setFormatter(Logging._formatter(correlation))

    @staticmethod
    def _log_level() -> int:
        return getattr(logging, os.environ.get('LOG_LEVEL', 'DEBUG').upper())

    @staticmethod
    def _formatter(correlation: str = "") -> logging.Formatter:
        return logging.Formatter(Logging.LOG_FORMAT.format(correlation=correlation), datefmt=Logging.DATE_FORMAT)

    @staticmethod
    def _package_handler() -> logging.Handler:
        package_logger = logging.getLogger(Logging.PACKAGE_LOGGER)
        if not package_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(Logging._formatter())
            package_logger.addHandler(handler)
            package_logger.setLevel(logging.DEBUG)
            package_logger.propagate = False
        return package_logger.handlers[0]
