#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
habitpulse - Configuration
Environment-driven settings with validation
"""

import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pytz


class Environment(Enum):
    """Runtime environments"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class InsightConfig:
    """Insight gate and detector thresholds (percentages / percentage points)"""
    min_days: int = 28
    day_variance_threshold: float = 15.0
    peak_hour_threshold: float = 30.0
    weekend_diff_threshold: float = 15.0
    early_day_threshold: float = 60.0
    early_day_min_completions: int = 14


@dataclass
class SyncConfig:
    """Remote write behaviour"""
    write_retries: int = 2
    write_retry_delay: float = 1.0
    queue_offline_writes: bool = False
    refresh_interval_seconds: int = 300


@dataclass
class ProgressConfig:
    """Accepted progress values for count and time habits"""
    max_count: float = 10000
    max_time: float = 1440  # minutes


@dataclass
class LoggingConfig:
    level: LogLevel = LogLevel.INFO
    to_file: bool = False
    log_dir: Path = Path("logs")
    format: str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


class AnalyticsConfig:
    """Top-level configuration; read from the environment (or a given mapping)."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ
        self._load_config()
        self._validate_config()

    def _get(self, key: str, default: Any) -> str:
        value = self._environ.get(key)
        return str(default) if value is None or value == "" else value

    def _get_bool(self, key: str, default: bool) -> bool:
        return self._get(key, str(default).lower()).lower() == 'true'

    def _load_config(self):
        """Read every section from the environment"""
        self.environment = Environment(self._get('ENVIRONMENT', 'development'))
        self.timezone = self._get('TIMEZONE', 'UTC')

        self.insights = InsightConfig(
            min_days=int(self._get('INSIGHT_MIN_DAYS', 28)),
            day_variance_threshold=float(self._get('DAY_VARIANCE_THRESHOLD', 15)),
            peak_hour_threshold=float(self._get('PEAK_HOUR_THRESHOLD', 30)),
            weekend_diff_threshold=float(self._get('WEEKEND_DIFF_THRESHOLD', 15)),
            early_day_threshold=float(self._get('EARLY_DAY_THRESHOLD', 60)),
            early_day_min_completions=int(self._get('EARLY_DAY_MIN_COMPLETIONS', 14))
        )

        self.sync = SyncConfig(
            write_retries=int(self._get('WRITE_RETRIES', 2)),
            write_retry_delay=float(self._get('WRITE_RETRY_DELAY', 1.0)),
            queue_offline_writes=self._get_bool('QUEUE_OFFLINE_WRITES', False),
            refresh_interval_seconds=int(self._get('REFRESH_INTERVAL_SECONDS', 300))
        )

        self.progress = ProgressConfig(
            max_count=float(self._get('MAX_COUNT_PROGRESS', 10000)),
            max_time=float(self._get('MAX_TIME_PROGRESS', 1440))
        )

        self.logging = LoggingConfig(
            level=LogLevel(self._get('LOG_LEVEL', 'INFO').upper()),
            to_file=self._get_bool('LOG_TO_FILE', False),
            log_dir=Path(self._get('LOG_DIR', 'logs')),
            format=self._get('LOG_FORMAT', '%(asctime)s [%(levelname)s] %(name)s: %(message)s')
        )

    def _validate_config(self):
        """Collect every problem and fail once"""
        errors = []

        if self.timezone not in pytz.all_timezones_set:
            errors.append(f"Unknown TIMEZONE: {self.timezone}")

        if self.insights.min_days < 1:
            errors.append("INSIGHT_MIN_DAYS must be at least 1")

        for name, value in (
            ('DAY_VARIANCE_THRESHOLD', self.insights.day_variance_threshold),
            ('PEAK_HOUR_THRESHOLD', self.insights.peak_hour_threshold),
            ('WEEKEND_DIFF_THRESHOLD', self.insights.weekend_diff_threshold),
            ('EARLY_DAY_THRESHOLD', self.insights.early_day_threshold),
        ):
            if not 0 <= value <= 100:
                errors.append(f"{name} must be between 0 and 100")

        if self.sync.write_retries < 0:
            errors.append("WRITE_RETRIES cannot be negative")

        if self.sync.write_retry_delay < 0:
            errors.append("WRITE_RETRY_DELAY cannot be negative")

        if self.sync.refresh_interval_seconds <= 0:
            errors.append("REFRESH_INTERVAL_SECONDS must be positive")

        if self.progress.max_count <= 0 or self.progress.max_time <= 0:
            errors.append("Progress limits must be positive")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def get_logging_config(self) -> Dict[str, Any]:
        """dictConfig mapping for logging.config.dictConfig"""
        handlers = ['console']
        if self.logging.to_file:
            handlers.append('file')

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.logging.format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.logging.level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                'habitpulse': {
                    'level': self.logging.level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'apscheduler': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.logging.to_file:
            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.logging.level.value,
                'formatter': 'default',
                'filename': str(self.logging.log_dir / f"habitpulse_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return config

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            'environment': self.environment.value,
            'timezone': self.timezone,
            'insights': {
                'min_days': self.insights.min_days,
                'day_variance_threshold': self.insights.day_variance_threshold,
                'peak_hour_threshold': self.insights.peak_hour_threshold,
                'weekend_diff_threshold': self.insights.weekend_diff_threshold
            },
            'sync': {
                'write_retries': self.sync.write_retries,
                'write_retry_delay': self.sync.write_retry_delay,
                'queue_offline_writes': self.sync.queue_offline_writes,
                'refresh_interval_seconds': self.sync.refresh_interval_seconds
            },
            'log_level': self.logging.level.value
        }


def load_config(environ: Optional[Mapping[str, str]] = None) -> AnalyticsConfig:
    """Build a fresh configuration; nothing is cached at module level."""
    return AnalyticsConfig(environ)


__all__ = [
    'AnalyticsConfig',
    'Environment',
    'LogLevel',
    'InsightConfig',
    'SyncConfig',
    'ProgressConfig',
    'LoggingConfig',
    'load_config'
]
