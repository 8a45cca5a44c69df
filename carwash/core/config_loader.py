import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

from carwash.core.config import settings
from carwash.core.logger import logger

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "shops.json"

def catalog_path() -> Path:
    return Path(settings.SHOP_CATALOG_PATH) if settings.SHOP_CATALOG_PATH else DEFAULT_CATALOG_PATH

def load_shop_catalog(path: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """
    Loads the shop catalog (cities, shops, services, add-ons) from JSON.
    Raises FileNotFoundError if the file is missing, ValueError if it is not valid JSON.
    """
    path = Path(path) if path else catalog_path()

    if not path.exists():
        logger.critical(f"❌ Shop catalog '{path}' not found, cannot serve bookings.")
        raise FileNotFoundError(f"Shop catalog not found at {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            catalog = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in shop catalog: {e}")
        raise ValueError(f"Invalid JSON in shop catalog: {e}")

    logger.info(f"✅ Shop catalog loaded: {len(catalog.get('shops', []))} shops ({catalog.get('company_name', 'Unknown')})")
    return catalog

def get_shop_config(catalog: Dict[str, Any], shop_id: str) -> Optional[Dict[str, Any]]:
    """
    Raw shop entry with the shared add-ons merged in, or None if unknown.
    """
    for shop in catalog.get("shops", []):
        if shop.get("id") == shop_id:
            merged = dict(shop)
            merged.setdefault("add_ons", catalog.get("add_ons", []))
            return merged
    return None
