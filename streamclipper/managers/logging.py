"""
Logging Manager for StreamClipper.

Configures the root logger with rotating file handlers and an optional
console handler, driven by the 'logging.*' keys of the ConfigurationManager.
"""

import logging
import logging.handlers
from typing import Dict, List, Optional
from pathlib import Path

from .base import BaseManager


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"


class LoggingManager(BaseManager):
    """
    Manages centralized logging with file rotation.

    Handles:
    - streamclipper.log for everything at the configured level
    - errors.log for WARNING and above
    - Console output
    """

    LOG_LEVELS = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    def __init__(self, dependency_container=None, logs_directory: Optional[Path] = None):
        super().__init__(dependency_container)

        self.current_log_level = 'INFO'
        self.log_to_console = True
        self.log_to_file = True
        self.max_file_size_mb = 10
        self.max_backup_count = 5

        self.logs_directory: Optional[Path] = Path(logs_directory) if logs_directory else None
        self.file_handlers: Dict[str, logging.handlers.RotatingFileHandler] = {}
        self.console_handler: Optional[logging.StreamHandler] = None

    def initialize(self) -> bool:
        try:
            self._read_configuration()

            if self.log_to_file and self.logs_directory is not None:
                self.logs_directory.mkdir(parents=True, exist_ok=True)
                self._setup_file_handlers()
            if self.log_to_console:
                self._setup_console_handler()

            root = logging.getLogger()
            root.setLevel(self.LOG_LEVELS[self.current_log_level])
            for handler in self._all_handlers():
                root.addHandler(handler)

            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "LoggingManager initialization")
            return False

    def cleanup(self) -> None:
        self._mark_cleanup_started()
        root = logging.getLogger()
        for handler in self._all_handlers():
            root.removeHandler(handler)
            handler.close()
        self.file_handlers.clear()
        self.console_handler = None

    def set_log_level(self, level: str) -> bool:
        if level not in self.LOG_LEVELS:
            self.logger.warning(f"Invalid log level: {level}")
            return False

        self.current_log_level = level
        numeric_level = self.LOG_LEVELS[level]
        logging.getLogger().setLevel(numeric_level)
        if 'main' in self.file_handlers:
            self.file_handlers['main'].setLevel(numeric_level)
        if self.console_handler:
            self.console_handler.setLevel(numeric_level)

        self.logger.info(f"Log level changed to {level}")
        return True

    def get_log_level(self) -> str:
        return self.current_log_level

    def _read_configuration(self) -> None:
        if not (self.container and self.container.has_service('configuration')):
            return

        config = self.container.get_service('configuration')
        self.current_log_level = config.get_setting('logging.default_level', self.current_log_level)
        self.log_to_console = config.get_setting('logging.console_enabled', self.log_to_console)
        self.log_to_file = config.get_setting('logging.file_enabled', self.log_to_file)
        self.max_file_size_mb = config.get_setting('logging.max_file_size_mb', self.max_file_size_mb)
        self.max_backup_count = config.get_setting('logging.max_backup_count', self.max_backup_count)
        if self.logs_directory is None:
            self.logs_directory = config.get_logs_directory()

    def _setup_file_handlers(self) -> None:
        self.file_handlers['main'] = self._rotating_handler(
            'streamclipper.log', self.LOG_LEVELS[self.current_log_level])
        self.file_handlers['error'] = self._rotating_handler('errors.log', logging.WARNING)

    def _rotating_handler(self, filename: str, level: int) -> logging.handlers.RotatingFileHandler:
        handler = logging.handlers.RotatingFileHandler(
            self.logs_directory / filename,
            maxBytes=self.max_file_size_mb * 1024 * 1024,
            backupCount=self.max_backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        return handler

    def _setup_console_handler(self) -> None:
        self.console_handler = logging.StreamHandler()
        self.console_handler.setLevel(self.LOG_LEVELS[self.current_log_level])
        self.console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    def _all_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = list(self.file_handlers.values())
        if self.console_handler is not None:
            handlers.append(self.console_handler)
        return handlers
