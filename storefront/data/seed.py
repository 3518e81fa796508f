# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models import ProductModel, VariantModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

GRIND_TYPES = ("whole_bean", "coarse", "medium", "fine")

# size -> starting stock
STOCK_BY_SIZE = {"250g": 50, "500g": 30, "1kg": 20}

CATALOG = [
    {
        "name": "Ethiopian Yirgacheffe",
        "description": "A bright and fruity single-origin coffee with complex floral notes and a wine-like acidity.",
        "roast_level": "light",
        "flavor_notes": ["Blueberry", "Jasmine", "Citrus"],
        "origin": "Ethiopia",
        "image_url": "https://images.unsplash.com/photo-1559056199-641a0ac8b55e?w=500&h=500&fit=crop",
        "prices": {"250g": "650", "500g": "1235", "1kg": "2275"},
    },
    {
        "name": "Colombian Supremo",
        "description": "A well-balanced medium roast with caramel sweetness and nutty undertones.",
        "roast_level": "medium",
        "flavor_notes": ["Caramel", "Walnut", "Chocolate"],
        "origin": "Colombia",
        "image_url": "https://images.unsplash.com/photo-1587734195503-904fca47e0e9?w=500&h=500&fit=crop",
        "prices": {"250g": "550", "500g": "1045", "1kg": "1925"},
    },
    {
        "name": "Sumatra Mandheling",
        "description": "A bold and earthy dark roast with low acidity and full body.",
        "roast_level": "dark",
        "flavor_notes": ["Dark Chocolate", "Earthy", "Spice"],
        "origin": "Indonesia",
        "image_url": "https://images.unsplash.com/photo-1514432324607-a09d9b4aefdd?w=500&h=500&fit=crop",
        "prices": {"250g": "700", "500g": "1330", "1kg": "2450"},
    },
]


def seed(session_factory=SessionLocal):
    db = session_factory()
    try:
        # only seed an empty catalog
        if db.query(ProductModel).first():
            return

        for entry in CATALOG:
            product = ProductModel(
                name=entry["name"],
                description=entry["description"],
                roast_level=entry["roast_level"],
                flavor_notes=list(entry["flavor_notes"]),
                origin=entry["origin"],
                image_url=entry["image_url"],
                is_active=True,
            )
            for size, price in entry["prices"].items():
                for grind in GRIND_TYPES:
                    product.variants.append(
                        VariantModel(
                            size=size,
                            grind_type=grind,
                            price=Decimal(price),
                            stock_count=STOCK_BY_SIZE[size],
                        )
                    )
            db.add(product)

        db.commit()
        logger.info(f"Seeded {len(CATALOG)} products")
    finally:
        db.close()
