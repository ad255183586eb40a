"""
Cache policy providers: TTL, loading mode and debug flag.

Caches hold a provider, not the values, and ask it on every call so a
configuration change takes effect on the next read.
"""
from dataclasses import dataclass
from typing import Protocol, Union

from .core import LoadingMode

DEFAULT_TTL_SECONDS = 600
DEFAULT_LOADING_MODE = LoadingMode.EAGER


def parse_loading_mode(value: Union[str, LoadingMode]) -> LoadingMode:
    """Accept 'eager' / 'lazy' (any case) or a LoadingMode."""
    if isinstance(value, LoadingMode):
        return value
    try:
        return LoadingMode(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown cache loading mode {value!r}; expected 'eager' or 'lazy'"
        ) from None


class CachePolicy(Protocol):
    """What a collection cache reads from its configuration."""

    @property
    def ttl_seconds(self) -> float: ...

    @property
    def loading_mode(self) -> LoadingMode: ...

    @property
    def debug(self) -> bool: ...


class SettingsCachePolicy:
    """
    Policy backed by a pydantic Settings object.

    Reads the cache_* fields at access time; nothing is copied at
    construction.
    """

    def __init__(self, settings):
        self._settings = settings

    @property
    def ttl_seconds(self) -> float:
        return self._settings.cache_ttl_seconds

    @property
    def loading_mode(self) -> LoadingMode:
        return parse_loading_mode(self._settings.cache_loading_mode)

    @property
    def debug(self) -> bool:
        return bool(self._settings.cache_debug)


@dataclass
class StaticCachePolicy:
    """Mutable in-process policy, mainly for tests and scripts."""
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    loading_mode: LoadingMode = DEFAULT_LOADING_MODE
    debug: bool = False

    def __post_init__(self):
        self.loading_mode = parse_loading_mode(self.loading_mode)
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {self.ttl_seconds}")

    def set_mode(self, mode: Union[str, LoadingMode]) -> None:
        self.loading_mode = parse_loading_mode(mode)
