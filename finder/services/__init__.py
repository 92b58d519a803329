"""Services package: expose all concrete services from one import."""
from .monkey_service import (
    DEFAULT_MONKEYS_URL, MonkeyNotFoundError, MonkeyService, haversine_km,
)
from .rating_service import MAX_RATING, MIN_RATING, RatingService

__all__ = [
    'DEFAULT_MONKEYS_URL',
    'MonkeyNotFoundError',
    'MonkeyService',
    'haversine_km',
    'MAX_RATING',
    'MIN_RATING',
    'RatingService',
]
