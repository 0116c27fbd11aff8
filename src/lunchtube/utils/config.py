"""Configuration loading and validation for LunchTube."""

import os
import logging
from typing import Dict, List
from pathlib import Path
from dotenv import load_dotenv
from rich.logging import RichHandler

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / '.env')

# Pipeline constants
CACHE_TTL_SECONDS = 30 * 60
MAX_REFRESHES = 3
WATCHED_HISTORY_LIMIT = 500
MAX_SAMPLED_CHANNELS = 25
ITEMS_PER_COLLECTION = 4
TRENDING_MAX_RESULTS = 20
DETAIL_BATCH_LIMIT = 30
FRESHNESS_MIN_DAYS = 15
FRESHNESS_MAX_DAYS = 30


def load_config() -> Dict:
    """Load configuration from environment variables."""
    # Helper function to resolve paths relative to project root
    def resolve_path(path: str, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    data_dir = resolve_path(os.getenv('LUNCHTUBE_DATA_DIR'), 'data')

    config = {
        # Google OAuth (installed app)
        'google_client_id': os.getenv('GOOGLE_CLIENT_ID'),
        'google_client_secret': os.getenv('GOOGLE_CLIENT_SECRET'),
        'token_path': resolve_path(os.getenv('LUNCHTUBE_TOKEN_PATH'), 'data/token.json'),

        # Persisted state (synced scope holds settings, local scope holds the rest)
        'data_dir': data_dir,
        'sync_store_path': str(Path(data_dir) / 'sync.json'),
        'local_store_path': str(Path(data_dir) / 'local.json'),

        # Fetch settings
        'trending_region': os.getenv('TRENDING_REGION', 'US').upper(),
        'fetch_timeout_seconds': float(os.getenv('FETCH_TIMEOUT_SECONDS', '15')),
        'short_threshold_seconds': int(os.getenv('SHORT_THRESHOLD_SECONDS', '90')),

        # Periodic window check
        'check_interval_minutes': int(os.getenv('CHECK_INTERVAL_MINUTES', '5')),

        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
        'log_file': str(Path(data_dir) / 'lunchtube.log'),
    }

    return config


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    region = config.get('trending_region') or ''
    if len(region) != 2 or not region.isalpha():
        errors.append(f"TRENDING_REGION must be a two-letter region code, got '{region}'")

    if config.get('short_threshold_seconds', 0) <= 0:
        errors.append("SHORT_THRESHOLD_SECONDS must be positive")

    if config.get('fetch_timeout_seconds', 0) <= 0:
        errors.append("FETCH_TIMEOUT_SECONDS must be positive")

    if config.get('check_interval_minutes', 0) <= 0:
        errors.append("CHECK_INTERVAL_MINUTES must be positive")

    data_dir = config.get('data_dir')
    if data_dir:
        try:
            Path(data_dir).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create data folder: {e}")

    # Client credentials are only needed for the interactive OAuth flow,
    # a cached token.json is enough otherwise.
    has_client = config.get('google_client_id') and config.get('google_client_secret')
    token_path = config.get('token_path')
    if not has_client and not (token_path and Path(token_path).exists()):
        errors.append(
            "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET required until a token has been saved"
        )

    return errors


def setup_logging(log_level: str = "INFO", log_file: str = None) -> None:
    """Set up logging configuration with Rich for terminal output."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    handlers = [rich_handler]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        format="%(message)s"
    )

    # Suppress noisy third-party loggers
    noisy_loggers = [
        'googleapiclient.discovery',
        'googleapiclient.discovery_cache',
        'google_auth_oauthlib.flow',
        'google.auth.transport.requests',
        'urllib3.connectionpool',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
