# seed.py
"""Load the sample catalog: python seed.py [--reset]"""

import argparse
import logging
from datetime import timedelta
from typing import List

from pymongo.database import Database

import database
from schemas import Product

logger = logging.getLogger(__name__)

UNSPLASH = "https://images.unsplash.com/{}?auto=format&fit=crop&w=1025&q=80"

SAMPLE_PRODUCTS: List[dict] = [
    {
        "name": "Classic White Shirt",
        "description": "A timeless white shirt in premium cotton with a regular fit, button-down collar and single cuffs.",
        "price": 2599,
        "images": [UNSPLASH.format("photo-1598033129183-c4f50c736f10"), UNSPLASH.format("photo-1594938298603-c8148c4dae35")],
        "category": "shirt",
        "brand": "StyleBrand",
        "demographic": "Men",
        "sizes": ["S", "M", "L", "XL"],
        "colors": ["White", "Blue", "Black"],
        "stock": 100,
        "rating": 4.5,
        "reviews": [
            {"name": "John Doe", "rating": 5, "comment": "Great quality shirt, fits perfectly!"},
            {"name": "Jane Smith", "rating": 4, "comment": "Nice shirt, but runs slightly large."},
        ],
        "featured": True,
    },
    {
        "name": "Slim Fit Jeans",
        "description": "Modern slim fit jeans in stretch denim for all-day comfort.",
        "price": 1599,
        "images": [UNSPLASH.format("photo-1542272604-787c3835535d")],
        "category": "pant",
        "brand": "DenimCo",
        "demographic": "Men",
        "sizes": ["30", "32", "34", "36"],
        "colors": ["Blue", "Black", "Gray"],
        "stock": 75,
        "rating": 4.2,
        "reviews": [{"name": "Mike Johnson", "rating": 4, "comment": "Comfortable and stylish."}],
        "featured": True,
    },
    {
        "name": "Casual T-Shirt",
        "description": "Soft cotton crew-neck tee for everyday wear.",
        "price": 599,
        "images": [UNSPLASH.format("photo-1521572163474-6864f9cf17ab")],
        "category": "tshirt",
        "brand": "CasualWear",
        "demographic": "Men",
        "sizes": ["S", "M", "L", "XL"],
        "colors": ["White", "Black", "Gray", "Navy"],
        "stock": 120,
        "rating": 4.0,
        "reviews": [{"name": "Sarah Wilson", "rating": 4, "comment": "Good basic tee."}],
        "featured": False,
    },
    {
        "name": "Summer Dress",
        "description": "Light floral dress made for warm days.",
        "price": 2549,
        "images": [UNSPLASH.format("photo-1572804013309-59a88b7e92f1")],
        "category": "tops",
        "brand": "SummerStyle",
        "demographic": "Women",
        "sizes": ["XS", "S", "M", "L"],
        "colors": ["Floral", "Blue", "Pink"],
        "stock": 60,
        "rating": 4.7,
        "reviews": [{"name": "Emma Davis", "rating": 5, "comment": "Beautiful dress, perfect for summer!"}],
        "featured": True,
    },
    {
        "name": "Formal Trouser",
        "description": "Tailored trousers with a crisp crease for the office.",
        "price": 899,
        "images": [UNSPLASH.format("photo-1594633312681-425c7b97ccd1")],
        "category": "trouser",
        "brand": "FormalWear",
        "demographic": "Men",
        "sizes": ["30", "32", "34", "36"],
        "colors": ["Black", "Navy", "Gray"],
        "stock": 80,
        "rating": 4.3,
        "reviews": [{"name": "David Brown", "rating": 4, "comment": "Good fit and comfortable."}],
        "featured": False,
    },
]


def seed_products(db: Database, products: List[dict] = None, reset: bool = False) -> int:
    """Insert the catalog when the collection is empty (or after `reset`). Returns inserted count."""
    products = SAMPLE_PRODUCTS if products is None else products
    if reset:
        deleted = db.products.delete_many({}).deleted_count
        logger.info("Cleared %d existing products", deleted)
    elif db.products.count_documents({}) > 0:
        logger.info("Products already exist, skipping seed")
        return 0

    # Later entries get later timestamps so "newest" follows list order
    base = database.utcnow()
    documents = []
    for offset, raw in enumerate(products):
        doc = Product(**raw).model_dump()
        doc["createdAt"] = base + timedelta(seconds=offset)
        documents.append(doc)

    if documents:
        db.products.insert_many(documents)
    logger.info("Inserted %d products", len(documents))
    return len(documents)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the product catalog")
    parser.add_argument("--reset", action="store_true", help="delete existing products first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    seed_products(database.connect(), reset=args.reset)
    database.close()
