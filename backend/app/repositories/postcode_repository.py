from typing import Optional
from .base import BaseRepository
from ..models.postcodes import PostcodeLocation


class PostcodeRepository(BaseRepository[PostcodeLocation]):
    """Repository for the local postcode coordinate cache."""

    def __init__(self):
        super().__init__(PostcodeLocation)

    def get_by_postcode(self, postcode: str) -> Optional[PostcodeLocation]:
        return self.session.query(PostcodeLocation).filter_by(postcode=postcode).first()

    def upsert(self, postcode: str, latitude: float, longitude: float, **extra) -> PostcodeLocation:
        """
        Insert or refresh a cached postcode. Does not commit.

        Args:
            postcode: Formatted postcode or outward code
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            **extra: is_outcode, town, county, source

        Returns:
            The staged PostcodeLocation
        """
        location = self.get_by_postcode(postcode)
        if location is None:
            location = PostcodeLocation(postcode=postcode, latitude=latitude, longitude=longitude)
            self.session.add(location)
        else:
            location.latitude = latitude
            location.longitude = longitude
        for key, value in extra.items():
            if value is not None and hasattr(location, key):
                setattr(location, key, value)
        return location
