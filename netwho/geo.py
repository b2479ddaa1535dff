"""Optional IP geolocation through ipinfo.io.

Only active when an API token file exists. Every lookup, successful or not,
is remembered for the rest of the run so a failing address is tried once.
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, Optional

import requests

from .config import DEFAULT_TOKEN_PATH, IPINFO_URL
from .models import GeoLocation
from .utils.log import get_logger
from .utils.net import plain_ip

logger = get_logger('geo')

EMPTY = GeoLocation()


def load_token(path: Optional[Path] = None) -> Optional[str]:
    path = path or DEFAULT_TOKEN_PATH
    try:
        token = Path(path).read_text(encoding="utf-8").strip()
    except OSError:
        logger.warning(
            f"No ipinfo token found, so detailed IP info will not be available. "
            f"Populate the API key at \"{path}\""
        )
        return None
    return token or None


class GeoCache:
    """Per-run address -> location memo. Each key is written once."""

    def __init__(self):
        self._data: Dict[str, GeoLocation] = {}

    def __contains__(self, addr: str) -> bool:
        return addr in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get(self, addr: str) -> Optional[GeoLocation]:
        return self._data.get(addr)

    def put(self, addr: str, loc: GeoLocation) -> GeoLocation:
        return self._data.setdefault(addr, loc)

    def label(self, addr: str) -> str:
        loc = self._data.get(addr)
        return loc.label if loc else ""


class GeoEnricher:
    def __init__(self, token: Optional[str], cache: Optional[GeoCache] = None,
                 session=None, timeout: float = 5.0):
        self.token = token
        self.cache = cache if cache is not None else GeoCache()
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def _fetch(self, ip: str) -> GeoLocation:
        try:
            resp = self.session.get(IPINFO_URL.format(ip=ip), params={"token": self.token},
                                    timeout=self.timeout)
            if not resp.ok:
                logger.debug(f"ipinfo {ip}: HTTP {resp.status_code}")
                return EMPTY
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"ipinfo {ip}: {e}")
            return EMPTY
        if not isinstance(data, dict):
            return EMPTY
        return GeoLocation(country=data.get("country") or "", city=data.get("city") or "")

    def lookup(self, addr: str) -> GeoLocation:
        if not self.enabled:
            return EMPTY
        ip = plain_ip(addr)
        if ip is None:
            return EMPTY
        cached = self.cache.get(addr)
        if cached is not None:
            return cached
        return self.cache.put(addr, self._fetch(ip))

    def location(self, addr: str) -> str:
        return self.lookup(addr).label

    def enrich_all(self, addresses: Iterable[str], workers: int = 8) -> Dict[str, GeoLocation]:
        """Look up all addresses in parallel; completion order does not matter."""
        addrs = list(dict.fromkeys(addresses))
        if not self.enabled or not addrs:
            return {a: EMPTY for a in addrs}
        results: Dict[str, GeoLocation] = {}
        ex = ThreadPoolExecutor(max_workers=max(1, workers))
        try:
            futs = {ex.submit(self.lookup, a): a for a in addrs}
            for fut in as_completed(futs):
                results[futs[fut]] = fut.result()
        except BaseException:
            ex.shutdown(wait=False, cancel_futures=True)
            raise
        ex.shutdown()
        return results
