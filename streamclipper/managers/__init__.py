"""
StreamClipper Manager Components

This package contains the manager-based architecture components that hold
client-visible state and coordinate it with the backend:

- BaseManager / BaseStore: lifecycle, error handling and snapshot publishing
- DependencyContainer: Service registry for injecting managers
- ErrorHandler: Centralized error handling and user notification
- ProjectManager: Loaded sources and the analysis lifecycle
- HighlightsManager: Highlights, selection and export progress
- SettingsManager: Detection/export settings and their wire mapping
- LicenseManager: Cached license status, display only
- NotificationManager: Toast queue and modal flags
- WorkflowController: Backend commands and progress events folded into the stores
- ConfigurationManager: Application configuration
- LoggingManager: Centralized logging with file rotation
"""

from .base import BaseManager, BaseStore
from .container import DependencyContainer
from .error_handling import ErrorHandler, ErrorContext, ErrorSeverity
from .project import ProjectManager
from .highlights import HighlightsManager, InvalidClipTimingError
from .settings import SettingsManager
from .license import LicenseManager
from .notifications import NotificationManager
from .workflow import WorkflowController
from .configuration import ConfigurationManager
from .logging import LoggingManager

__all__ = [
    'BaseManager',
    'BaseStore',
    'DependencyContainer',
    'ErrorHandler',
    'ErrorContext',
    'ErrorSeverity',
    'ProjectManager',
    'HighlightsManager',
    'InvalidClipTimingError',
    'SettingsManager',
    'LicenseManager',
    'NotificationManager',
    'WorkflowController',
    'ConfigurationManager',
    'LoggingManager',
]
