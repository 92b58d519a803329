"""Business logic for the monkey list: fetch once, then serve from memory."""
import logging
import math
from typing import List, Optional

import requests

from ..models import Monkey

DEFAULT_MONKEYS_URL = "https://www.montemagno.com/monkeys.json"

_EARTH_RADIUS_KM = 6371.0


class MonkeyNotFoundError(LookupError):
    """Raised when no cached monkey carries the requested name."""


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    return 2 * _EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class MonkeyService:
    """Caches the monkey list downloaded from *url*.

    Rules
    -----
    * The network is only consulted while the in-memory list is empty; once
      a fetch has filled it, it is never downloaded again.
    * Any fetch failure (transport error, HTTP error status, malformed body)
      is logged and yields an empty list.  Nothing is raised to the caller.
    * :meth:`add_monkey` appends locally without de-duplication.

    Not thread-safe: calls are expected from a single UI thread.
    """

    def __init__(self, url: str = DEFAULT_MONKEYS_URL,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None) -> None:
        """
        Args:
            url:     JSON endpoint returning an array of monkey records.
            timeout: Request timeout in seconds; ``None`` keeps the HTTP
                     client's default.
            session: Optional pre-built :class:`requests.Session`.
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._monkeys: List[Monkey] = []
        self._log = logging.getLogger('monkeyfinder.service')

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch(self) -> List[Monkey]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            self._log.warning("Could not fetch monkeys from %s: %s", self.url, e)
            return []
        except ValueError as e:
            self._log.warning("Monkey feed at %s is not valid JSON: %s", self.url, e)
            return []

        if not isinstance(data, list):
            self._log.warning("Monkey feed at %s is not a JSON array", self.url)
            return []

        try:
            return [Monkey.from_dict(raw) for raw in data]
        except ValueError as e:
            self._log.warning("Monkey feed at %s has an invalid record: %s", self.url, e)
            return []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_monkeys(self) -> List[Monkey]:
        """Return the cached monkeys, downloading them on first use.

        Returns:
            The monkey list in feed order (empty when the fetch failed).
        """
        if self._monkeys:
            return list(self._monkeys)

        self._log.info("Fetching monkeys from %s", self.url)
        monkeys = self._fetch()
        if monkeys:
            self._monkeys = monkeys
            self._log.info("Cached %d monkeys", len(monkeys))
        return list(self._monkeys)

    @property
    def cached_monkeys(self) -> List[Monkey]:
        """The monkeys held in memory right now; never touches the network."""
        return list(self._monkeys)

    @property
    def cached_count(self) -> int:
        return len(self._monkeys)

    def add_monkey(self, monkey: Monkey) -> List[Monkey]:
        """Append *monkey* to the in-memory list and return the updated list."""
        self._monkeys.append(monkey)
        self._log.debug("Added monkey %r (%d cached)", monkey.name, len(self._monkeys))
        return list(self._monkeys)

    def find_monkey_by_name(self, name: str) -> Monkey:
        """Return the first cached monkey called *name*.

        Raises:
            MonkeyNotFoundError: no cached monkey has that name.
        """
        for monkey in self._monkeys:
            if monkey.name == name:
                return monkey
        raise MonkeyNotFoundError(f"Monkey not found: {name}")

    def get_closest_monkey(self, latitude: float,
                           longitude: float) -> Optional[Monkey]:
        """Return the monkey nearest to the given coordinates.

        Uses :meth:`get_monkeys`, so the first call may trigger the fetch.
        Ties go to the monkey listed first.

        Returns:
            The closest :class:`Monkey`, or ``None`` when no monkeys are known.
        """
        monkeys = self.get_monkeys()
        if not monkeys:
            return None
        return min(
            monkeys,
            key=lambda m: haversine_km(latitude, longitude, m.latitude, m.longitude),
        )
