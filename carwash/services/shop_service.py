from typing import Any, Dict, List, Optional

from carwash.core.config_loader import load_shop_catalog, get_shop_config
from carwash.core.errors import ShopNotFound
from carwash.models.db_models import City, Shop


class ShopDirectory:
    """Read-only shop reference data backed by the JSON catalog."""

    def __init__(self, catalog: Optional[Dict[str, Any]] = None):
        self.catalog = catalog if catalog is not None else load_shop_catalog()
        self._shops: Dict[str, Shop] = {}
        for raw in self.catalog.get("shops", []):
            shop = Shop(**get_shop_config(self.catalog, raw["id"]))
            self._shops[shop.id] = shop

    async def get_shop(self, shop_id: str) -> Shop:
        shop = self._shops.get(shop_id)
        if shop is None:
            raise ShopNotFound(f"Shop '{shop_id}' not found")
        return shop

    async def list_cities(self) -> List[City]:
        return [City(**c) for c in self.catalog.get("cities", [])]

    async def list_shops(self, city_id: Optional[str] = None) -> List[Shop]:
        shops = sorted(self._shops.values(), key=lambda s: s.name)
        if city_id:
            shops = [s for s in shops if s.city_id == city_id]
        return shops
