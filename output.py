import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def write_result(result, path):
    """Overwrite path with result as pretty JSON, then echo it to stdout."""
    payload = json.dumps(result, indent=2, ensure_ascii=False, default=str)
    Path(path).write_text(payload, encoding='utf-8')
    logger.info(f"Saved to {path}")
    print(payload)
    return payload
