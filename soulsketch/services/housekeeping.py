import logging
import os
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


def cleanup_old_files(directory: str, older_than_days: int = 7) -> int:
    """Delete regular files in `directory` last modified before the cutoff. Returns how many went."""
    if not os.path.isdir(directory):
        return 0
    cutoff = datetime.now() - timedelta(days=older_than_days)
    cleaned = 0
    for filename in os.listdir(directory):
        file_path = os.path.join(directory, filename)
        try:
            if os.path.isfile(file_path) and datetime.fromtimestamp(os.path.getmtime(file_path)) < cutoff:
                os.remove(file_path)
                cleaned += 1
                logger.info("Cleaned up old file: %s", filename)
        except OSError as e:
            logger.warning("Error cleaning up file %s: %s", filename, e)
    return cleaned
