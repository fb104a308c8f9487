"""Built-in records used when a collection has never been persisted."""
import copy

VEHICLES = [
    {
        "id": 1700000000000,
        "dealerId": "1",
        "make": "Toyota",
        "model": "Camry",
        "year": 2022,
        "price": 250000,
        "description": "Excellent condition, low mileage, one owner.",
        "images": [],
        "mileage": "15,000 km",
        "transmission": "Automatic",
        "fuel": "Petrol",
        "engine": "2.5L 4-cylinder",
        "color": "White",
        "doors": 4,
        "seats": 5,
        "condition": "Excellent",
        "category": "Used",
        "featured": True,
        "features": ["Leather Seats", "Sunroof", "Backup Camera"],
    }
]

BLOG_POSTS = [
    {
        "id": 1,
        "title": "How to Buy a Used Car in South Africa - Complete Guide 2024",
        "excerpt": "Everything you need to know about purchasing pre-owned vehicles in South Africa.",
        "fullContent": "<h2>How to Buy a Used Car in South Africa</h2><p>...</p>",
        "image": "https://images.unsplash.com/photo-1493238792000-8113da705763",
        "date": "2024-01-15",
        "readTime": "8 min",
        "author": "DirkL",
        "category": "Buying Guide",
        "tags": ["used cars", "South Africa"],
    }
]

DEALERS = [
    {
        "id": 1,
        "name": "IdealCar Pretoria",
        "email": "sales@idealcar.co.za",
        "phone": "+27555123456",
        "location": "Pretoria, Gauteng",
        "description": "Quality pre-owned vehicles since 2010.",
        "logo": None,
        "banner": None,
        "status": "active",
    }
]

SEED_DATA = {
    "vehicles": VEHICLES,
    "blog_posts": BLOG_POSTS,
    "dealers": DEALERS,
}


def seed_for(kind: str) -> list[dict]:
    # callers mutate what they load; never hand out the module constants
    return copy.deepcopy(SEED_DATA.get(kind, []))
