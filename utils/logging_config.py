# utils/logging_config.py

import logging
import logging.handlers
from pathlib import Path
import json
import time
from contextlib import contextmanager
from datetime import datetime

_installed_handlers = []


def setup_logging(level: str = "INFO",
                  log_dir: str = "logs",
                  name: str = "videodedup") -> logging.Logger:
    """
    Configure the root logger with console, rotating file and JSON handlers

    Module loggers created with logging.getLogger(__name__) propagate here.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Drop handlers from a previous call
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler (rotating)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path / f"{name}.log",
        maxBytes=10*1024*1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # JSON handler for structured logs
    json_handler = logging.handlers.RotatingFileHandler(
        log_path / f"{name}_structured.json",
        maxBytes=10*1024*1024,
        backupCount=5,
        encoding='utf-8'
    )
    json_handler.setLevel(logging.INFO)
    json_handler.setFormatter(JSONFormatter())

    for handler in (console_handler, file_handler, json_handler):
        root.addHandler(handler)
        _installed_handlers.append(handler)

    return logging.getLogger(name)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON"""

    def format(self, record):
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


# Performance monitoring
class PerformanceLogger:
    """
    Log stage durations of a pipeline run
    """

    def __init__(self, logger: logging.Logger = None):
        self.metrics = []
        self.logger = logger or logging.getLogger(__name__)

    def log_metric(self, operation: str, duration: float, **metadata):
        """Log a performance metric"""
        metric = {
            'timestamp': datetime.now().isoformat(),
            'operation': operation,
            'duration_seconds': duration,
            **metadata
        }
        self.metrics.append(metric)
        self.logger.info("%s took %.2fs", operation, duration)

    @contextmanager
    def track(self, operation: str, **metadata):
        """Time the enclosed block and record it as a metric"""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.log_metric(operation, time.perf_counter() - start, **metadata)

    def save_metrics(self, output_path: str):
        """Save metrics to JSON file"""
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.metrics, f, indent=2)

    def get_statistics(self, operation: str = None) -> dict:
        """Get statistics for operations"""
        import numpy as np

        if operation:
            durations = [m['duration_seconds'] for m in self.metrics
                        if m['operation'] == operation]
        else:
            durations = [m['duration_seconds'] for m in self.metrics]

        if not durations:
            return {}

        return {
            'count': len(durations),
            'mean': float(np.mean(durations)),
            'median': float(np.median(durations)),
            'min': float(np.min(durations)),
            'max': float(np.max(durations)),
            'total': float(np.sum(durations))
        }
