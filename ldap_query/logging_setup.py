"""
Logging configuration for ldap_query.

Configures the root logger with a rotating file handler, optional console
output and a filter that masks bind credentials in log messages.
"""

import os
import re
import logging
import logging.handlers
from typing import Any, Dict, Optional


class SensitiveDataFilter(logging.Filter):
    """Mask credentials in log messages."""

    SENSITIVE_KEYWORDS = [
        'bind_password', 'password', 'passwd', 'pwd', 'secret', 'credential', 'unicodepwd',
    ]

    PATTERNS = [
        # key=value
        *(re.compile(rf'({keyword}\s*=\s*)[^\s,}}\]]+', re.IGNORECASE) for keyword in SENSITIVE_KEYWORDS),
        # 'key': 'value' and "key": "value"
        *(re.compile(rf'([\'"]{keyword}[\'"]\s*:\s*[\'"])[^\'"]*([\'"])', re.IGNORECASE)
          for keyword in SENSITIVE_KEYWORDS),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        for pattern in self.PATTERNS:
            if pattern.groups == 2:
                msg = pattern.sub(r'\1****\2', msg)
            else:
                msg = pattern.sub(r'\1****', msg)
        record.msg = msg
        record.args = None
        return True


class LoggingManager:
    """
    Applies the ``logging`` section of the configuration once per process.
    """

    def __init__(self):
        self.configured = False
        self.log_dir: Optional[str] = None
        self.retention_days = 7

    def setup_logging(self, config: Optional[Dict[str, Any]]) -> None:
        """
        Set up logging based on configuration.

        Args:
            config: Logging configuration dictionary
        """
        if self.configured:
            return

        logging_config = config or {}

        log_level = str(logging_config.get('level', 'INFO')).upper()
        self.log_dir = logging_config.get('log_dir', 'logs')
        rotation = logging_config.get('rotation', 'daily')
        self.retention_days = logging_config.get('retention_days', 7)
        console_enabled = logging_config.get('console_output', True)
        console_level = str(logging_config.get('console_level', 'WARNING')).upper()

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level, logging.INFO))
        root_logger.handlers.clear()

        sensitive_filter = SensitiveDataFilter()

        if self.log_dir:
            self._ensure_log_directory()
            file_handler = self._create_file_handler(rotation)
            file_handler.setLevel(getattr(logging, log_level, logging.INFO))
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            file_handler.addFilter(sensitive_filter)
            root_logger.addHandler(file_handler)

        if console_enabled:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(getattr(logging, console_level, logging.WARNING))
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s [%(levelname)s] %(message)s',
                datefmt='%H:%M:%S'
            ))
            console_handler.addFilter(sensitive_filter)
            root_logger.addHandler(console_handler)

        self.configured = True

        logging.getLogger(__name__).info(
            f"Logging configured: level={log_level}, dir={self.log_dir}, console={console_enabled}"
        )

    def _ensure_log_directory(self) -> None:
        try:
            os.makedirs(self.log_dir, exist_ok=True)
        except OSError as e:
            logging.getLogger(__name__).warning(
                f"Could not create log directory {self.log_dir}: {e}; using current directory"
            )
            self.log_dir = '.'

    def _create_file_handler(self, rotation: str) -> logging.Handler:
        """
        Create the file handler for ``rotation`` ('daily', 'midnight' or 'none').
        """
        log_file = os.path.join(self.log_dir, 'ldap_query.log')

        if str(rotation).lower() in ('daily', 'midnight'):
            handler = logging.handlers.TimedRotatingFileHandler(
                filename=log_file,
                when='midnight',
                interval=1,
                backupCount=self.retention_days,
                encoding='utf-8'
            )
            handler.suffix = '%Y-%m-%d'
            return handler

        return logging.FileHandler(log_file, encoding='utf-8')

    def reset(self) -> None:
        """Allow setup_logging to run again."""
        self.configured = False


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: Optional[Dict[str, Any]]) -> None:
    """
    Convenience function to set up logging.

    Args:
        config: Logging configuration dictionary
    """
    _logging_manager.setup_logging(config)
