"""
Run the booking API with ``python -m vems_booking``.
"""

import uvicorn

from .config import get_settings
from .main import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8001, log_level=get_settings().log_level.lower())
