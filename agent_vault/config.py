import os
import sys
import logging
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# === CONFIGURATION ===
LOG_LEVEL = os.getenv("AGENT_VAULT_LOG_LEVEL", "INFO").upper()
LOG_FILE_PATH = os.getenv("AGENT_VAULT_LOG_FILE") or None

IPFS_API_URL = os.getenv("IPFS_API_URL", "http://127.0.0.1:5001/api/v0")
IPFS_GATEWAY_URL = os.getenv("IPFS_GATEWAY_URL", "https://ipfs.io/ipfs")
AZURE_CONNECTION_STRING = os.getenv("AZURE_CONNECTION_STRING")
AZURE_CONTAINER_NAME = os.getenv("AZURE_CONTAINER_NAME", "agent-vault")
STORAGE_TIMEOUT = float(os.getenv("STORAGE_TIMEOUT", "30"))

MAX_PLAINTEXT_SIZE = int(os.getenv("MAX_PLAINTEXT_SIZE", str(10 * 1024 * 1024)))

# Second recipient for agent configuration blocks (dual access)
PROTOCOL_WALLET = os.getenv("PROTOCOL_WALLET") or None


def setup_logging(log_file: Optional[str] = LOG_FILE_PATH, level: str = LOG_LEVEL) -> logging.Logger:
    """Configure logging to output to the console and, optionally, a file."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(numeric_level)

    # Remove any existing handlers
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)

    return logger
