"""
Configuration Manager for StreamClipper.

Holds application configuration: where the backend lives, how logging is
set up and how long toasts stay visible. Detection and export settings are
not stored here; the backend persists those.
"""

import copy
import json
from typing import Any, Dict, Optional
from pathlib import Path
from PyQt6.QtCore import QObject, pyqtSignal

from .base import BaseManager


class ConfigurationManagerSignals(QObject):
    """Signals for ConfigurationManager communication with other managers."""

    setting_changed = pyqtSignal(str, object)  # setting_key, new_value
    settings_loaded = pyqtSignal()
    settings_saved = pyqtSignal()
    settings_reset = pyqtSignal()
    validation_failed = pyqtSignal(str, str)  # setting_key, error_message


class ConfigurationManager(BaseManager):
    """
    Manages application configuration.

    Handles:
    - Nested defaults addressed with dot notation ('backend.url')
    - Validation of known keys
    - JSON persistence under ~/.streamclipper/config
    """

    DEFAULT_SETTINGS = {
        'app': {
            'version': '1.0.0',
        },

        'backend': {
            'url': 'http://127.0.0.1:7420',
            'timeout_seconds': 30.0,
            'events_path': '/events',
        },

        'logging': {
            'default_level': 'INFO',
            'console_enabled': True,
            'file_enabled': True,
            'max_file_size_mb': 10,
            'max_backup_count': 5,
        },

        'notifications': {
            'success_ms': 5000,
            'warning_ms': 5000,
            'info_ms': 4000,
            'error_ms': 7000,
        },
    }

    VALIDATION_RULES = {
        'backend.url': {'type': str},
        'backend.timeout_seconds': {'type': (int, float), 'min': 1, 'max': 600},
        'logging.default_level': {'type': str, 'choices': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']},
        'logging.max_file_size_mb': {'type': int, 'min': 1, 'max': 512},
        'logging.max_backup_count': {'type': int, 'min': 0, 'max': 50},
        'notifications.success_ms': {'type': int, 'min': 0},
        'notifications.warning_ms': {'type': int, 'min': 0},
        'notifications.info_ms': {'type': int, 'min': 0},
        'notifications.error_ms': {'type': int, 'min': 0},
    }

    def __init__(self, dependency_container=None, base_dir: Optional[Path] = None):
        """
        Initialize the ConfigurationManager.

        Args:
            dependency_container: Container for dependency injection
            base_dir: Root directory for config and logs, ~/.streamclipper by default
        """
        super().__init__(dependency_container)

        self.signals = ConfigurationManagerSignals()
        self.settings: Dict[str, Any] = self._get_default_settings()

        self.base_dir = Path(base_dir) if base_dir else Path.home() / '.streamclipper'
        self.config_dir = self.base_dir / 'config'
        self.logs_dir = self.base_dir / 'logs'
        self.settings_file = self.config_dir / 'settings.json'

    def initialize(self) -> bool:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.logs_dir.mkdir(parents=True, exist_ok=True)

            self._load_configuration()
            if not self._validate_configuration():
                self.logger.warning("Configuration validation failed, using defaults")
                self.settings = self._get_default_settings()

            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "ConfigurationManager initialization")
            return False

    def cleanup(self) -> None:
        self._mark_cleanup_started()

    # ========================================
    # Configuration access
    # ========================================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Setting key in dot notation (e.g., 'backend.url')
            default: Returned when the key does not exist
        """
        value = self.settings
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set_setting(self, key: str, value: Any, save: bool = True) -> bool:
        """
        Set a configuration value.

        Returns:
            bool: False if the value failed validation
        """
        if not self._validate_setting(key, value):
            return False

        keys = key.split('.')
        current = self.settings
        for k in keys[:-1]:
            current = current.setdefault(k, {})

        old_value = current.get(keys[-1])
        current[keys[-1]] = value

        if old_value != value:
            self.signals.setting_changed.emit(key, value)
            self.logger.debug(f"Setting updated: {key} = {value}")

        if save:
            return self.save_configuration()
        return True

    def get_all_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self.settings)

    def save_configuration(self) -> bool:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2, ensure_ascii=False)

            self.signals.settings_saved.emit()
            return True

        except OSError as e:
            self.handle_error(e, "save_configuration")
            return False

    def reset_to_defaults(self) -> bool:
        self.settings = self._get_default_settings()
        self.signals.settings_reset.emit()
        self.logger.info("Configuration reset to defaults")
        return self.save_configuration()

    def get_logs_directory(self) -> Path:
        return self.logs_dir

    def get_toast_durations(self) -> Dict[str, int]:
        """Toast display times keyed by severity name."""
        return {
            'success': self.get_setting('notifications.success_ms'),
            'warning': self.get_setting('notifications.warning_ms'),
            'info': self.get_setting('notifications.info_ms'),
            'error': self.get_setting('notifications.error_ms'),
        }

    # ========================================
    # Internals
    # ========================================

    def _get_default_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self.DEFAULT_SETTINGS)

    def _load_configuration(self) -> None:
        if not self.settings_file.exists():
            self.logger.debug("No configuration file, using defaults")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read {self.settings_file}: {e}; using defaults")
            return
        if not isinstance(loaded, dict):
            self.logger.warning(f"{self.settings_file} does not hold a settings object; using defaults")
            return

        self.settings = self._merge_with_defaults(self._get_default_settings(), loaded)
        self.signals.settings_loaded.emit()
        self.logger.debug(f"Configuration loaded from {self.settings_file}")

    def _merge_with_defaults(self, defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay loaded values on defaults so new keys are always present."""
        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(defaults.get(key), dict):
                defaults[key] = self._merge_with_defaults(defaults[key], value)
            else:
                defaults[key] = value
        return defaults

    def _validate_configuration(self) -> bool:
        return all(self._validate_setting(key, self.get_setting(key))
                   for key in self.VALIDATION_RULES)

    def _validate_setting(self, key: str, value: Any) -> bool:
        problem = self._rule_violation(key, value)
        if problem is None:
            return True
        self.signals.validation_failed.emit(key, problem)
        self.logger.warning(f"Rejected configuration value {key}={value!r}: {problem}")
        return False

    def _rule_violation(self, key: str, value: Any) -> Optional[str]:
        """Describe how ``value`` breaks the rule for ``key``, or None if it does not."""
        rule = self.VALIDATION_RULES.get(key)
        if rule is None:
            return None

        expected = rule.get('type')
        # bool is an int subclass but never a valid number of seconds or bytes
        if expected is not None and (isinstance(value, bool) or not isinstance(value, expected)):
            return f"expected {getattr(expected, '__name__', 'a number')}, got {type(value).__name__}"
        if value < rule.get('min', value):
            return f"must be at least {rule['min']}"
        if value > rule.get('max', value):
            return f"must be at most {rule['max']}"
        if 'choices' in rule and value not in rule['choices']:
            return f"must be one of {', '.join(rule['choices'])}"
        return None
