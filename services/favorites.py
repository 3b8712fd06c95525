import logging

from parking.models import Favorite, ParkingSpot
from services.availability import get_spot

logger = logging.getLogger(__name__)


class FavoriteService:
    @staticmethod
    def toggle(user, spot_id):
        """Star or unstar a spot; returns whether it is starred afterwards."""
        spot = get_spot(spot_id)
        deleted, _ = Favorite.objects.filter(user=user, spot=spot).delete()
        if deleted:
            logger.info(f"User {user.pk} removed spot {spot.pk} from favorites")
            return False
        Favorite.objects.get_or_create(user=user, spot=spot)
        logger.info(f"User {user.pk} added spot {spot.pk} to favorites")
        return True

    @staticmethod
    def favorites_for(user):
        return ParkingSpot.objects.filter(favorited_by__user=user).order_by("name")
