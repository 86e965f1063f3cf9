"""
Shop data directories in the local cache.

Each deployed shop has ``<DSHOP_CACHE>/<authToken>/data/config.json``. A shop
is "viewable" when that file exists; directories holding one that match no
shop row are reported as local (unregistered) shops.
"""

from pathlib import Path
from typing import Iterable

SHOP_CONFIG_FILE = Path("data") / "config.json"


def has_shop_config(cache_dir: Path, auth_token: str) -> bool:
    return (Path(cache_dir) / auth_token / SHOP_CONFIG_FILE).exists()


def find_local_shops(cache_dir: Path, known_tokens: Iterable[str]) -> list[str]:
    cache_dir = Path(cache_dir)
    if not cache_dir.exists():
        return []
    known = set(known_tokens)
    return [
        entry.name
        for entry in sorted(cache_dir.iterdir())
        if entry.name not in known and has_shop_config(cache_dir, entry.name)
    ]
