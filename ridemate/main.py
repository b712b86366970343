"""Main application entry point."""

from ridemate.config.settings import SettingsFactory
from ridemate.factory import create_app

# Create application instance
settings = SettingsFactory.create()
app = create_app(settings)

# For development server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ridemate.main:app",
        host="0.0.0.0",  # nosec B104 - Development server binding is intentional
        port=8000,
        reload=True if settings.environment == "development" else False,
        log_level=settings.log_level.lower(),
    )
