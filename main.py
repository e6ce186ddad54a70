"""
PICK LEAGUE — Main Entry Point
Runs the price resolution and leaderboard API.
"""
import uvicorn
from pickleague.config.settings import get_settings
from pickleague.utils.logger import setup_logging, get_logger

logger = get_logger("main")


def run_api():
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logging()
    logger.info("starting_pickleague", version=settings.version, port=settings.port)
    uvicorn.run(
        "pickleague.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run_api()
