# catalog_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Catalog Service (dev mock)")

# ceny i oplaty w kobo
MENU_ITEMS = {
    "jollof-rice": {"id": "jollof-rice", "name": "Jollof Rice", "price": 250000, "is_available": True},
    "fried-plantain": {"id": "fried-plantain", "name": "Fried Plantain", "price": 80000, "is_available": True},
    "suya-wrap": {"id": "suya-wrap", "name": "Suya Wrap", "price": 320000, "is_available": True},
    "chapman": {"id": "chapman", "name": "Chapman", "price": 150000, "is_available": True},
    "pepper-soup": {"id": "pepper-soup", "name": "Goat Pepper Soup", "price": 400000, "is_available": False},
}

DELIVERY_ZONES = {
    "marian": {"id": "marian", "name": "Marian", "base_fee": 160000, "peak_fee": 190000, "is_active": True},
    "state-housing": {"id": "state-housing", "name": "State Housing", "base_fee": 140000, "peak_fee": 170000, "is_active": True},
    "8-miles": {"id": "8-miles", "name": "8 Miles", "base_fee": 350000, "peak_fee": 380000, "is_active": True},
    "parliamentary": {"id": "parliamentary", "name": "Parliamentary", "base_fee": 180000, "peak_fee": 210000, "is_active": True},
    "satellite-town": {"id": "satellite-town", "name": "Satellite Town", "base_fee": 200000, "peak_fee": 230000, "is_active": True},
    "lemna": {"id": "lemna", "name": "Lemna", "base_fee": 160000, "peak_fee": 190000, "is_active": True},
    "extended-zone": {"id": "extended-zone", "name": "Extended Zone", "base_fee": 220000, "peak_fee": 250000, "is_active": True},
    "inactive-zone": {"id": "inactive-zone", "name": "Inactive Zone", "base_fee": 100000, "peak_fee": 120000, "is_active": False},
}


@app.get("/menu-items/{menu_item_id}")
def get_menu_item(menu_item_id: str):
    item = MENU_ITEMS.get(menu_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


@app.get("/delivery-zones/{zone_id}")
def get_delivery_zone(zone_id: str):
    zone = DELIVERY_ZONES.get(zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Delivery zone not found")
    return zone
