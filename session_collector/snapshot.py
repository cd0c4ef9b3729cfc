"""JSON snapshots of collection results ("latest" plus timestamped copies)."""

import json
import logging
from pathlib import Path
from typing import Optional

from .models import CollectionResult

logger = logging.getLogger(__name__)

LATEST_NAME = "latest.json"


def snapshot_name(result: CollectionResult) -> str:
    return f"collection-{result.collected_at.strftime('%Y%m%d-%H%M%S')}.json"


def save_snapshot(result: CollectionResult, data_dir: Path) -> Path:
    """Write the result to a timestamped file and refresh latest.json.

    Returns the timestamped path. Raises OSError if the snapshot itself
    cannot be written; a failed latest.json refresh is only logged.
    """
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    path = data_dir / snapshot_name(result)
    path.write_text(payload, encoding="utf-8")
    logger.info(f"Saved collection snapshot to {path}")

    latest = data_dir / LATEST_NAME
    try:
        latest.write_text(payload, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to update {latest}: {e}")
    return path


def load_latest(data_dir: Path) -> Optional[CollectionResult]:
    """Read latest.json back, or None if there is no usable snapshot."""
    latest = Path(data_dir) / LATEST_NAME
    if not latest.exists():
        return None
    try:
        with open(latest, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to read snapshot {latest}: {e}")
        return None
    return CollectionResult.from_dict(data)
