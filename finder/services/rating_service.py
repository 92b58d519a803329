"""Business logic for per-monkey star ratings."""
import logging
from typing import Callable, Dict, List, Union

from ..models import Monkey, whole_number

MIN_RATING = 0
MAX_RATING = 5

RatingObserver = Callable[[], object]


class RatingService:
    """Keeps the user's star rating for each monkey in memory.

    Rules
    -----
    * Ratings are keyed by monkey *name*; a :class:`~finder.models.Monkey`
      or a bare name string may be passed wherever a monkey is expected.
    * Values must be whole numbers and are clamped to **0-5**; 0 means
      "unrated".
    * Setting a rating replaces any previous one, then every subscribed
      observer is called with no arguments.  Observers read the new state
      back through :meth:`get_rating`.
    """

    def __init__(self) -> None:
        self._ratings: Dict[str, int] = {}
        self._observers: List[RatingObserver] = []
        self._log = logging.getLogger('monkeyfinder.ratings')

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _key(monkey: Union[Monkey, str]) -> str:
        if isinstance(monkey, Monkey):
            return monkey.name
        return str(monkey)

    @staticmethod
    def clamp(value: int) -> int:
        return max(MIN_RATING, min(MAX_RATING, whole_number(value)))

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer()
            except Exception:
                self._log.exception("Rating observer %r failed", observer)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_rating(self, monkey: Union[Monkey, str]) -> int:
        """Return the rating for *monkey*, or ``0`` if it was never rated."""
        return self._ratings.get(self._key(monkey), MIN_RATING)

    def set_rating(self, monkey: Union[Monkey, str], value: int) -> int:
        """Store the clamped *value* for *monkey* and notify observers.

        Returns:
            The rating actually stored.

        Raises:
            ValueError: *value* is not a whole number (booleans, strings and
                fractional or non-finite floats are rejected).
        """
        rating = self.clamp(value)
        key = self._key(monkey)
        self._ratings[key] = rating
        self._log.debug("Rating for %r set to %d", key, rating)
        self._notify()
        return rating

    def subscribe(self, observer: RatingObserver) -> None:
        """Register *observer* to be called after every rating change."""
        self._observers.append(observer)

    def unsubscribe(self, observer: RatingObserver) -> bool:
        """Remove *observer*.

        Returns:
            ``True`` if it was registered; ``False`` otherwise.
        """
        try:
            self._observers.remove(observer)
        except ValueError:
            return False
        return True

    def get_all(self) -> Dict[str, int]:
        """Return all ratings as a ``{name: rating}`` mapping."""
        return dict(self._ratings)
