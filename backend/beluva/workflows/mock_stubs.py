"""Sample catalog recommendations for frontend development.

Served by /api/mock-recommendations outside production so the UI can be
exercised without AI credentials or a seeded catalog.
"""

from beluva.models.contracts import Recommendation

MOCK_FURNITURE_ITEMS: list[dict] = [
    {
        "id": "mock-item-1",
        "name": "Modern Sofa",
        "description": "Elegant modern sofa with clean lines and comfortable cushions",
        "price": 1299.99,
        "material": "Premium fabric, solid wood frame",
        "tags": ["living room", "modern", "sofa"],
        "image_url": "https://images.unsplash.com/photo-1555041469-a586c61ea9bc?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/sofa1",
    },
    {
        "id": "mock-item-2",
        "name": "Mid-Century Armchair",
        "description": "Stylish mid-century inspired armchair with tufted back",
        "price": 549.99,
        "material": "Velvet upholstery, walnut legs",
        "tags": ["living room", "mid-century", "chair"],
        "image_url": "https://images.unsplash.com/photo-1586023492125-27b2c045efd7?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/chair1",
    },
    {
        "id": "mock-item-3",
        "name": "Minimalist Coffee Table",
        "description": "Sleek coffee table with clean geometric design",
        "price": 399.99,
        "material": "Tempered glass, metal frame",
        "tags": ["living room", "minimalist", "table"],
        "image_url": "https://images.unsplash.com/photo-1532372576444-dda954194ad0?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/table1",
    },
    {
        "id": "mock-item-4",
        "name": "Scandinavian Floor Lamp",
        "description": "Elegant floor lamp with adjustable height and warm lighting",
        "price": 199.99,
        "material": "Metal base, linen shade",
        "tags": ["lighting", "scandinavian", "lamp"],
        "image_url": "https://images.unsplash.com/photo-1507473885765-e6ed057f782c?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/lamp1",
    },
    {
        "id": "mock-item-5",
        "name": "Geometric Area Rug",
        "description": "Contemporary rug with geometric pattern to define your space",
        "price": 249.99,
        "material": "Hand-tufted wool blend",
        "tags": ["decor", "contemporary", "rug"],
        "image_url": "https://images.unsplash.com/photo-1575414003880-7a921fa2062c?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/rug1",
    },
    {
        "id": "mock-item-6",
        "name": "Floating Wall Shelf",
        "description": "Minimalist floating shelf for displaying decor",
        "price": 89.99,
        "material": "Solid wood with invisible mounting",
        "tags": ["decor", "shelf", "storage"],
        "image_url": "https://images.unsplash.com/photo-1616486338812-3dadae4b4ace?q=80&w=1000",
        "purchase_link": "https://example.com/furniture/shelf1",
    },
]

_DEFAULT_COUNT = 3


def mock_recommendations(style: str = "modern", budget: float = 2000.0) -> list[Recommendation]:
    """Items tagged with ``style`` and priced within ``budget``.

    Falls back to the first three items when nothing matches.
    """
    style = style.lower()
    matches = [
        item
        for item in MOCK_FURNITURE_ITEMS
        if item["price"] <= budget and any(style in tag for tag in item["tags"])
    ]
    chosen = matches or MOCK_FURNITURE_ITEMS[:_DEFAULT_COUNT]
    return [
        Recommendation(
            id=item["id"],
            name=item["name"],
            description=item["description"],
            price=item["price"],
            image_url=item["image_url"],
            purchase_link=item["purchase_link"],
            reason=(
                f"The {item['material'].lower()} construction and "
                f"{', '.join(item['tags'])} styling suit the space shown in your image."
            ),
            score=0.8,
        )
        for item in chosen
    ]
