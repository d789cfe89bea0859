"""HelperHive booking core: accounts, catalog, bookings, payments and realtime updates."""

__version__ = "1.0.0"
