"""
ユーティリティパッケージ
共通機能のインポート
"""

from .system_utils import setup_debug_logger, now_ms

from .progress_tracker import ProgressTracker

from .error_handler import (
    ErpQueryError,
    NetworkError,
    DataLoadError,
    CacheError,
    CacheTransactionError,
    StorageQuotaExceededError,
    ErrorType,
    AppError,
    ErrorHandler,
    error_handler
)

from .settings import (
    DEFAULT_SETTINGS,
    load_app_settings,
    resolve_cache_directory
)

from .validators import (
    ValidationResult,
    validate_search_criteria,
    validate_search_value,
    validate_template_name
)

__all__ = [
    'setup_debug_logger',
    'now_ms',
    'ProgressTracker',
    'ErpQueryError',
    'NetworkError',
    'DataLoadError',
    'CacheError',
    'CacheTransactionError',
    'StorageQuotaExceededError',
    'ErrorType',
    'AppError',
    'ErrorHandler',
    'error_handler',
    'DEFAULT_SETTINGS',
    'load_app_settings',
    'resolve_cache_directory',
    'ValidationResult',
    'validate_search_criteria',
    'validate_search_value',
    'validate_template_name'
]
