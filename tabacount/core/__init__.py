# Core package - centralized exports
# - configurations.py: Config, database_path
# - db.py: Database and schema
# - collector.py: panel tokens and PanelView
# - errors.py: error taxonomy

from .configurations import Config, database_path
from .db import Database
from .models import User, SmokingType, SmokingLog, DailySmokingSummary
from .collector import PanelView, make_token, button_custom_id, extract_type_id
from .errors import CounterError, ConfigError, StoreError, DecodeError, PlatformClientError
from .utility import now_ts, now_local, today, day_bounds

__all__ = [
    'Config', 'database_path',
    'Database',
    'User', 'SmokingType', 'SmokingLog', 'DailySmokingSummary',
    'PanelView', 'make_token', 'button_custom_id', 'extract_type_id',
    'CounterError', 'ConfigError', 'StoreError', 'DecodeError', 'PlatformClientError',
    'now_ts', 'now_local', 'today', 'day_bounds',
]
