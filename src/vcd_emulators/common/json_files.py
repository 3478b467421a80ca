"""Helpers for reading and writing the JSON descriptors of the host application."""

import json
import logging
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)


def load_json_config(root_dir: Union[str, Path], name: str) -> Any:
    """Parse ``root_dir/name``; a missing file yields None, malformed JSON raises."""
    json_path = Path(root_dir) / name
    if not json_path.exists():
        logger.debug(f"Config file not found: {json_path}")
        return None
    with open(json_path, "r", encoding="utf-8") as f:
        return json.load(f)


def store_json_config(root_dir: Union[str, Path], name: str, content: Any) -> Path:
    """Write ``content`` as 2-space indented JSON, replacing any existing file."""
    json_path = Path(root_dir) / name
    json_path.write_text(json.dumps(content, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug(f"Stored {json_path}")
    return json_path
