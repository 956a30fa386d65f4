import logging
import os
import sys

def setup_logging(level: str = None):
    """Setup JSON-line logging for Cloud Functions without external dependencies"""

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # Cloud Functions automatically handle log routing
    logging.basicConfig(
        level=log_level,
        format='{"severity": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "timestamp": "%(asctime)s"}',
        stream=sys.stdout,
        force=True
    )

    # Suppress noisy logs
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
