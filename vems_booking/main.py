"""
Main application entry point for the VEMS booking core.
"""

import uvicorn

from .api.app import create_app
from .config import get_settings

# Create the FastAPI application
app = create_app()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "vems_booking.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
