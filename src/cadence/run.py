"""
Cadence Runner

Entry point for running the Cadence API server.
"""
import logging
import os

import uvicorn

from .config import Config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("cadence")


def run():
    """Run the Cadence API server"""
    logger.info(f"Starting Cadence on {Config.API_HOST}:{Config.API_PORT}")

    uvicorn.run(
        "cadence.app:app",
        host=Config.API_HOST,
        port=Config.API_PORT,
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )


if __name__ == "__main__":
    run()
