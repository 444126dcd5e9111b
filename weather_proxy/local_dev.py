"""
Local development server for the weather proxy.
Run from the project root: python -m weather_proxy.local_dev
"""

import logging
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).parent.parent


def main() -> None:
    env_file = ROOT_DIR / ".env"
    if env_file.exists():
        load_dotenv(env_file)
        logger.info("Loaded environment variables from %s", env_file)
    else:
        logger.info("No .env file found; using the shell environment")

    logger.info("API Documentation: http://localhost:8000/docs")

    uvicorn.run(
        "weather_proxy.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
