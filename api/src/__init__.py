"""FastAPI service for the BookNView movie ticket booking platform.

This package provides REST API endpoints for theatre owners (movies,
screens, shows) and customers (seat selection, bookings, payments).
"""

__version__ = "1.0.0"
