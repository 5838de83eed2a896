import logging
from typing import List

import yaml

logger = logging.getLogger(__name__)


def load_seed_urls(path: str) -> List[str]:
    """Load seed URLs from a YAML file.

    The document is either a list of URLs or a mapping with a `seeds` key
    holding a string or a list of strings:

        seeds:
          - https://example.com/
          - https://example.org/

    URLs are returned as written; the crawler validates them.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not data:
        return []

    if isinstance(data, dict):
        seeds = data.get("seeds")
    else:
        seeds = data
    if seeds is None:
        logger.warning("Seed file %s has no 'seeds' entry", path)
        return []
    if isinstance(seeds, str):
        seeds = [seeds]
    if not isinstance(seeds, list):
        raise ValueError(f"seeds in {path} must be a string or a list, got {type(seeds).__name__}")
    return [str(s) for s in seeds if s]
