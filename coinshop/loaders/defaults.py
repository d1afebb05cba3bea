"""Starter catalog inserted by the seed endpoint on an empty store."""

from __future__ import annotations

_IMAGES = "/attached_assets/generated_images"

DEFAULT_CATALOG: dict = {
    "products": [
        {
            "name": "سيارة فيراري سوداء",
            "nameEn": "Black Ferrari",
            "category": "vehicles",
            "price": 5000,
            "image": f"{_IMAGES}/black_luxury_sports_car.png",
            "isNew": True,
            "isFeatured": True,
        },
        {
            "name": "دودج تشارجر برتقالي",
            "nameEn": "Orange Dodge Charger",
            "category": "vehicles",
            "price": 3500,
            "image": f"{_IMAGES}/orange_muscle_car.png",
            "isFeatured": True,
        },
        {
            "name": "سيارة دفع رباعي خضراء",
            "nameEn": "Green 4x4 SUV",
            "category": "vehicles",
            "price": 4000,
            "image": f"{_IMAGES}/green_off-road_suv.png",
        },
        {
            "name": "دراجة نارية رياضية",
            "nameEn": "Sport Motorcycle",
            "category": "vehicles",
            "price": 2500,
            "image": f"{_IMAGES}/blue_sport_motorcycle.png",
            "isNew": True,
        },
        {
            "name": "تاج VIP الذهبي",
            "nameEn": "Golden VIP Crown",
            "description": "A golden VIP crown shown next to your name.",
            "category": "features",
            "price": 1500,
            "image": f"{_IMAGES}/golden_vip_crown.png",
            "isFeatured": True,
        },
        {
            "name": "درع الحماية المميز",
            "nameEn": "Premium Shield",
            "description": "Temporary immunity against attacks.",
            "category": "features",
            "price": 1000,
            "image": f"{_IMAGES}/premium_shield_badge.png",
        },
        {
            "name": "تعزيز السرعة",
            "nameEn": "Speed Boost",
            "description": "A permanent speed boost for every vehicle.",
            "category": "features",
            "price": 800,
            "image": f"{_IMAGES}/speed_boost_icon.png",
            "isNew": True,
        },
        {
            "name": "صلاحيات المشرف",
            "nameEn": "Moderator Permissions",
            "description": "Moderator permissions on the game server.",
            "category": "ownership",
            "price": 10000,
            "image": f"{_IMAGES}/premium_shield_badge.png",
            "stock": 5,
        },
    ]
}
