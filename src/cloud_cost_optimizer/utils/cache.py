"""
Thread-safe memoization of per-region lookups
"""
import threading
from typing import Callable, Dict, Generic, TypeVar

T = TypeVar('T')


class RegionCache(Generic[T]):
    """Lock-guarded region -> value map shared by the workers of one scan"""

    def __init__(self):
        self._values: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get_or_load(self, region: str, loader: Callable[[str], T]) -> T:
        """Return the cached value, loading it once per region"""
        with self._lock:
            if region in self._values:
                return self._values[region]

        value = loader(region)

        with self._lock:
            # A concurrent loader may have won; keep the first value
            return self._values.setdefault(region, value)

    def __contains__(self, region: str) -> bool:
        with self._lock:
            return region in self._values
