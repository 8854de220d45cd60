import logging
import os
import sys

# Logger setup: console-only (container friendly)
logger = logging.getLogger("store_channels")
logger.setLevel(os.getenv("LOG_LEVEL", "DEBUG").upper())

# Define a simple formatter
formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

# Console handler (stdout) for container logs
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.DEBUG)
console_handler.setFormatter(formatter)

# Remove any pre-existing handlers to avoid duplicates on reload
if logger.hasHandlers():
    logger.handlers.clear()

logger.addHandler(console_handler)
logger.propagate = False
