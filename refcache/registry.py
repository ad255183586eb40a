"""
Application-owned service container.

Holds exactly one instance per service class. Instances are built on first
request from the session factory and cache policy given to configure().
"""
import logging
import threading
from typing import Any, Dict, List, Type, TypeVar

from refcache.cache.core import Clock, default_clock
from refcache.errors import ConfigurationMissingError

logger = logging.getLogger("registry")

S = TypeVar("S")


class ServiceRegistry:
    """
    One live instance per service class.

    Usage:
        registry = ServiceRegistry()
        registry.configure(SessionLocal, SettingsCachePolicy(settings))
        categories = registry.get(CategoryService)
    """

    def __init__(self):
        self._instances: Dict[type, Any] = {}
        self._lock = threading.Lock()
        self._session_factory = None
        self._policy = None
        self._clock: Clock = default_clock

    def configure(self, session_factory, policy, clock: Clock = default_clock) -> None:
        """Wire the registry. Services already built keep their wiring."""
        with self._lock:
            self._session_factory = session_factory
            self._policy = policy
            self._clock = clock
        logger.info("Service registry configured")

    @property
    def is_configured(self) -> bool:
        return self._session_factory is not None and self._policy is not None

    def get(self, service_cls: Type[S]) -> S:
        """
        The instance for service_cls, built on first call.

        Raises:
            ConfigurationMissingError: If configure() has not been called
        """
        with self._lock:
            instance = self._instances.get(service_cls)
            if instance is not None:
                return instance
            if self._session_factory is None or self._policy is None:
                raise ConfigurationMissingError(
                    f"ServiceRegistry used before configure(): cannot build {service_cls.__name__}"
                )
            instance = service_cls(
                session_factory=self._session_factory,
                policy=self._policy,
                clock=self._clock,
            )
            self._instances[service_cls] = instance
            logger.debug(f"Created {service_cls.__name__}")
            return instance

    def services(self) -> List[Any]:
        with self._lock:
            return list(self._instances.values())

    def invalidate_all(self) -> int:
        """Invalidate every cached service (e.g. after a bulk import)."""
        count = 0
        for service in self.services():
            if hasattr(service, "invalidate_cache"):
                service.invalidate_cache()
                count += 1
        return count

    def reset(self) -> None:
        """Drop every instance and the wiring."""
        with self._lock:
            self._instances.clear()
            self._session_factory = None
            self._policy = None
            self._clock = default_clock
