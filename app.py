# app.py
from shiny import App
from dotenv import load_dotenv
import logging

# Load environment variables from .env file before the config module reads them
load_dotenv()

from chest_app.logging_config import setup_logging
from chest_app.ui import app_ui
from chest_app.server import server

logger = setup_logging()

app = App(app_ui, server)


def main():
    """Main entry point when running app.py directly"""
    try:
        logger.info("=" * 60)
        logger.info(">> STARTING ETH CHESTS")
        logger.info("=" * 60)
        logger.info(">> Application will be available at http://localhost:8001")
        app.run(host="127.0.0.1", port=8001, launch_browser=False)
    except KeyboardInterrupt:
        logger.info("[STOP] Application shutting down...")


if __name__ == "__main__":
    main()
