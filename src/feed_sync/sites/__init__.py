"""sites — concrete FeedAdapter implementations."""
from .google_photos import GooglePhotosAdapter  # noqa: F401

ADAPTERS = {
    GooglePhotosAdapter.name: GooglePhotosAdapter,
}
