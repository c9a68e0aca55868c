"""
Dependency Injection Container

Holds the explicitly constructed stores, the backend client and the support
services so that consumers receive them by injection instead of importing
module-level singletons.
"""

from typing import Any, Callable, Dict, List
import logging
from threading import RLock


class DependencyContainer:
    """
    Service registry for StreamClipper.

    Supports:
    - Instance registration and retrieval by name
    - Lazy factories, cached on first use
    - Ordered initialization and reverse-order cleanup of managers
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._order: List[str] = []
        self._lock = RLock()
        self.logger = logging.getLogger(__name__)

    def register_service(self, name: str, instance: Any) -> None:
        with self._lock:
            if name in self._services:
                self.logger.warning(f"Overriding existing service: {name}")
            else:
                self._order.append(name)

            self._services[name] = instance
            self.logger.debug(f"Registered service: {name} ({type(instance).__name__})")

    def register_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """Register a factory; the instance is created on first ``get_service``."""
        with self._lock:
            if name in self._factories:
                self.logger.warning(f"Overriding existing factory: {name}")

            self._factories[name] = factory
            self.logger.debug(f"Registered factory: {name}")

    def get_service(self, name: str) -> Any:
        """
        Get a service instance, creating it if necessary.

        Raises:
            KeyError: If no service or factory is registered under ``name``
        """
        with self._lock:
            if name in self._services:
                return self._services[name]

            if name in self._factories:
                instance = self._factories.pop(name)()
                self._services[name] = instance
                self._order.append(name)
                self.logger.debug(f"Created and cached service: {name}")
                return instance

            raise KeyError(f"Service '{name}' not found")

    def has_service(self, name: str) -> bool:
        with self._lock:
            return name in self._services or name in self._factories

    def get_service_names(self) -> List[str]:
        with self._lock:
            return list(self._order) + [n for n in self._factories if n not in self._order]

    def initialize_all(self) -> bool:
        """Initialize every registered manager in registration order."""
        ok = True
        for name in self.get_service_names():
            service = self.get_service(name)
            if hasattr(service, 'initialize') and hasattr(service, 'is_initialized'):
                if not service.is_initialized() and not service.initialize():
                    self.logger.error(f"Service failed to initialize: {name}")
                    ok = False
        return ok

    def remove_service(self, name: str) -> bool:
        with self._lock:
            self._factories.pop(name, None)
            service = self._services.pop(name, None)
            if name in self._order:
                self._order.remove(name)

        if service is None:
            return False

        self._cleanup_service(name, service)
        self.logger.debug(f"Removed service: {name}")
        return True

    def clear(self) -> None:
        """Clean up all services, most recently registered first."""
        with self._lock:
            services = [(name, self._services[name]) for name in reversed(self._order)
                        if name in self._services]
            self._services.clear()
            self._factories.clear()
            self._order.clear()

        for name, service in services:
            self._cleanup_service(name, service)
        self.logger.debug("Cleared all services and factories")

    def _cleanup_service(self, name: str, service: Any) -> None:
        if hasattr(service, 'cleanup'):
            try:
                service.cleanup()
            except Exception as e:
                self.logger.error(f"Error during cleanup of {name}: {e}", exc_info=True)
