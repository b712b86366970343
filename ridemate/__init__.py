"""RideMate: ride-sharing marketplace booking core."""

__version__ = "1.0.0"
