"""
Demo data for running the workflow without real documents or suppliers.

Provides a hotel-renovation BOM catalog, a six-supplier directory and
simulated supplier bids. Everything here is deterministic: the same inputs
always produce the same items and bids.
"""
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
import hashlib
import random

from procureflow.schemas import Bid, Item, ItemSet, RFQBundle, Supplier

DEMO_PROJECT_NAME = "Luxury Hotel Renovation - 150 Guest Rooms"


# ============= BOM CATALOG =============

BOM_CATALOG = [
    {
        "category": "Furniture", "subcategory": "Bedroom",
        "name": "King Size Bed Frame - Modern Platform Style",
        "quantity": 85, "unit_price": "450.00",
        "specifications": {"dimensions": '80"L x 76"W x 14"H', "material": "Solid oak with veneer",
                           "finish": "Walnut stain", "color": "Dark brown", "weight": "120 lbs"},
        "compliance": {"fire_rating_required": True, "certifications": ["CAL 117-2013"]},
    },
    {
        "category": "Furniture", "subcategory": "Bedroom",
        "name": "Upholstered Lounge Chair",
        "quantity": 150, "unit_price": "380.00",
        "specifications": {"dimensions": '32"W x 34"D x 33"H', "material": "Hardwood frame, polyester fabric",
                           "finish": "Matte", "color": "Slate grey", "weight": "45 lbs"},
        "compliance": {"fire_rating_required": True, "certifications_required": ["CAL 117-2013"]},
    },
    {
        "category": "Furniture", "subcategory": "Bedroom",
        "name": "Writing Desk with Cable Management",
        "quantity": 150, "unit_price": "320.00",
        "specifications": {"dimensions": '48"W x 24"D x 30"H', "material": "Sealed wood",
                           "finish": "Satin lacquer", "color": "Natural oak", "weight": "70 lbs"},
        "compliance": {"ada_relevant": True},
    },
    {
        "category": "Furniture", "subcategory": "Lobby",
        "name": "Reception Counter Module",
        "quantity": 4, "unit_price": "1850.00",
        "specifications": {"dimensions": '72"W x 30"D x 42"H', "material": "Quartz top, steel base",
                           "finish": "Polished", "color": "White", "weight": "310 lbs"},
        "compliance": {"ada_relevant": True},
    },
    {
        "category": "Lighting", "subcategory": "Bedroom",
        "name": "Bedside Wall Sconce - LED",
        "quantity": 300, "unit_price": "85.00",
        "specifications": {"dimensions": '6"W x 4"D x 12"H', "material": "Brushed aluminum",
                           "finish": "Bronze", "color": "Bronze", "weight": "3 lbs"},
        "compliance": {"certifications": ["UL Listed"]},
    },
    {
        "category": "Lighting", "subcategory": "Lobby",
        "name": "Crystal Chandelier",
        "quantity": 3, "unit_price": "1950.00",
        "specifications": {"dimensions": '36"W x 48"H', "material": "Crystal and chrome",
                           "finish": "Polished chrome", "color": "Clear", "weight": "60 lbs"},
        "compliance": {"certifications_required": ["UL Listed"]},
    },
    {
        "category": "Textiles", "subcategory": "Bedroom",
        "name": "Blackout Curtain Panels",
        "quantity": 300, "unit_price": "65.00",
        "specifications": {"dimensions": '54"W x 96"L', "material": "Polyester blackout weave",
                           "finish": "Woven", "color": "Charcoal", "weight": "4 lbs"},
        "compliance": {"fire_rating_required": True, "certifications": ["NFPA 701"]},
    },
    {
        "category": "Textiles", "subcategory": "Bedroom",
        "name": "Egyptian Cotton Duvet Cover",
        "quantity": 170, "unit_price": "55.00",
        "specifications": {"dimensions": '106"W x 92"L', "material": "400TC Egyptian cotton",
                           "finish": "Sateen", "color": "White", "weight": "3 lbs"},
        "compliance": {},
    },
    {
        "category": "Bathroom", "subcategory": "Bathroom",
        "name": "Floating Vanity Cabinet",
        "quantity": 150, "unit_price": "420.00",
        "specifications": {"dimensions": '36"W x 21"D x 34"H', "material": "MDF with laminate",
                           "finish": "Gloss white", "color": "White", "weight": "85 lbs"},
        "compliance": {"moisture_zone": "wet", "ada_relevant": True},
    },
    {
        "category": "Bathroom", "subcategory": "Bathroom",
        "name": "Frameless Anti-Fog Mirror",
        "quantity": 150, "unit_price": "140.00",
        "specifications": {"dimensions": '30"W x 36"H', "material": "Tempered glass",
                           "finish": "Polished edge", "color": "Clear", "weight": "18 lbs"},
        "compliance": {"moisture_zone": "wet"},
    },
    {
        "category": "Bathroom", "subcategory": "Bathroom",
        "name": "Towel Warmer Rack",
        "quantity": 150, "unit_price": "160.00",
        "specifications": {"dimensions": '20"W x 32"H', "material": "Stainless steel",
                           "finish": "Brushed", "color": "Silver", "weight": "12 lbs"},
        "compliance": {"moisture_zone": "wet"},
    },
    {
        "category": "Electronics", "subcategory": "Bedroom",
        "name": '55" Hospitality Smart TV',
        "quantity": 150, "unit_price": "520.00",
        "specifications": {"dimensions": '48"W x 3"D x 28"H', "material": "Plastic and aluminum",
                           "finish": "Matte black", "color": "Black", "weight": "35 lbs"},
        "compliance": {"certifications": ["UL Listed", "Energy Star"]},
    },
    {
        "category": "Appliances", "subcategory": "Bedroom",
        "name": "Compact Mini-Fridge",
        "quantity": 150, "unit_price": "180.00",
        "specifications": {"dimensions": '18"W x 19"D x 24"H', "material": "Steel",
                           "finish": "Powder coat", "color": "Black", "weight": "40 lbs"},
        "compliance": {"certifications_required": ["UL Listed"]},
    },
    {
        "category": "HVAC", "subcategory": "Bedroom",
        "name": "Smart Room Thermostat",
        "quantity": 150, "unit_price": "95.00",
        "specifications": {"dimensions": '4"W x 1"D x 4"H', "material": "Plastic",
                           "finish": "Gloss", "color": "White", "weight": "0.5 lbs"},
        "compliance": {"certifications": ["cULus"]},
    },
    {
        "category": "Furniture", "subcategory": "Restaurant",
        "name": "Restaurant Dining Chair",
        "quantity": 120, "unit_price": "210.00",
        "specifications": {"dimensions": '19"W x 22"D x 34"H', "material": "Beech wood, vinyl seat",
                           "finish": "Espresso", "color": "Espresso", "weight": "16 lbs"},
        "compliance": {"fire_rating_required": True, "certifications": ["CAL 117-2013"]},
    },
]


def demo_item_set(item_count: int = 30, project_name: str = DEMO_PROJECT_NAME) -> ItemSet:
    """
    Build a deterministic item set by walking the catalog.

    Counts larger than the catalog repeat it as numbered sets
    (e.g. "Crystal Chandelier - Set 2").
    """
    items = []
    for index in range(max(item_count, 0)):
        template = BOM_CATALOG[index % len(BOM_CATALOG)]
        cycle = index // len(BOM_CATALOG)
        name = template["name"] if cycle == 0 else f"{template['name']} - Set {cycle + 1}"
        items.append(Item(
            id=f"item_{index + 1:03d}",
            category=template["category"],
            subcategory=template["subcategory"],
            name=name,
            quantity=template["quantity"],
            unit_price=Decimal(template["unit_price"]),
            specifications=template["specifications"],
            compliance=template["compliance"],
        ))
    return ItemSet(project_name=project_name, items=items, source="demo_generated")


# ============= SUPPLIER DIRECTORY =============

DEMO_SUPPLIERS = [
    {
        "id": "SUP_001",
        "name": "West Coast Hospitality Furnishings",
        "location": "San Diego, CA",
        "specialties": ["Furniture", "Textiles"],
        "categories": ["Furniture", "Textiles", "Lighting"],
        "max_order_value": 500000,
        "certifications": ["CAL 117-2013", "FSC Certified", "GREENGUARD"],
        "email": "procurement@wchosp.com",
    },
    {
        "id": "SUP_002",
        "name": "Premier Bath & Fixtures Inc",
        "location": "Phoenix, AZ",
        "specialties": ["Bathroom"],
        "categories": ["Bathroom", "Plumbing"],
        "max_order_value": 200000,
        "certifications": ["ADA Compliant", "WaterSense", "UPC Listed"],
        "email": "quotes@premierbath.com",
    },
    {
        "id": "SUP_003",
        "name": "TechComfort Electronics",
        "location": "Seattle, WA",
        "specialties": ["Electronics"],
        "categories": ["Electronics", "HVAC", "Appliances"],
        "max_order_value": 300000,
        "certifications": ["UL Listed", "Energy Star", "CE Certified"],
        "email": "sales@techcomfort.com",
    },
    {
        "id": "SUP_004",
        "name": "Illuminate Design Group",
        "location": "Los Angeles, CA",
        "specialties": ["Lighting"],
        "categories": ["Lighting", "Electrical"],
        "max_order_value": 250000,
        "certifications": ["UL Listed", "DLC Certified", "Title 24 Compliant"],
        "email": "projects@illuminatedesign.com",
    },
    {
        "id": "SUP_005",
        "name": "Luxury Linens & Textiles Co",
        "location": "Dallas, TX",
        "specialties": ["Textiles"],
        "categories": ["Textiles", "Bedding", "Window Treatments"],
        "max_order_value": 150000,
        "certifications": ["Oeko-Tex", "Organic Cotton", "Fire Retardant"],
        "email": "hospitality@luxurylinens.com",
    },
    {
        "id": "SUP_006",
        "name": "National Furniture Distributors",
        "location": "Chicago, IL",
        "specialties": ["Furniture"],
        "categories": ["Furniture", "Outdoor Furniture", "Lobby Furniture"],
        "max_order_value": 750000,
        "certifications": ["CAL 117-2013", "BIFMA", "ISO 9001"],
        "email": "commercial@nationalfurn.com",
    },
]


def demo_suppliers() -> List[Supplier]:
    return [Supplier.model_validate(s) for s in DEMO_SUPPLIERS]


# ============= SIMULATED BIDS =============

def _rng(*parts: str) -> random.Random:
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


def simulate_bids(rfq: RFQBundle, supplier_ids: Optional[List[str]] = None) -> List[Bid]:
    """
    Simulate one bid per RFQ recipient.

    Amounts fall within 85-115% of the supplier's estimated value, lead times
    within 4-9 weeks and certification coverage within 85-99%. The first
    recipient offers a 3 year warranty, the rest 2 years. Randomness is seeded
    from the RFQ id and supplier id, so the same bundle yields the same bids.
    """
    bids = []
    for index, entry in enumerate(rfq.suppliers):
        if supplier_ids and entry.supplier_id not in supplier_ids:
            continue
        rng = _rng(rfq.rfq_id, entry.supplier_id)
        variance = Decimal(str(round(0.85 + rng.random() * 0.3, 4)))
        amount = (entry.estimated_value * variance).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        bids.append(Bid(
            bid_id=f"BID_{index + 1:03d}",
            supplier_id=entry.supplier_id,
            supplier_name=entry.supplier_name,
            total_bid_amount=amount,
            average_lead_time_weeks=4 + rng.randint(0, 5),
            warranty_years=3 if index == 0 else 2,
            certifications_coverage_pct=float(85 + rng.randint(0, 14)),
            submitted_at=rfq.created_at + timedelta(hours=rng.randint(1, 120)),
        ))
    return bids
