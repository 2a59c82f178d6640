"""
Business research for site builds.

Asks Claude for structured facts about a business. When Claude is not
configured, fails, or answers with something that isn't a JSON object, a
sector-default profile is returned instead so /create and /research always
have something to work with.
"""

from typing import Optional

from pydantic import ValidationError

from ..agents.prompts import RESEARCH_SYSTEM_PROMPT, RESEARCH_USER_PROMPT
from ..agents.schemas import BusinessResearch, BusinessReviews
from ..logging_config import get_logger
from ..utils.normalize import slugify_project_name
from .llm import LLMClient, extract_json_object

logger = get_logger("research")

DEFAULT_SECTOR = "hospitality"
DEFAULT_BRAND_COLORS = ["#0f0f1a", "#d4af37", "#ffffff"]

SECTOR_DEFAULTS = {
    "restaurant": {
        "features": ["Fine Dining", "Private Events", "Outdoor Seating", "Full Bar"],
        "price_range": "$$$",
        "keywords": ["dining", "cuisine", "restaurant", "food", "chef"],
        "brand_colors": ["#1a1a2e", "#d4af37", "#ffffff"],
    },
    "hotel": {
        "features": ["Luxury Suites", "Spa", "Pool", "Concierge", "Room Service"],
        "price_range": "$$$$",
        "keywords": ["hotel", "accommodation", "luxury", "stay", "resort"],
        "brand_colors": ["#0f0f1a", "#d4af37", "#ffffff"],
    },
    "nightclub": {
        "features": ["VIP Tables", "World-Class DJs", "Premium Bottles", "Events"],
        "price_range": "$$$$",
        "keywords": ["nightlife", "club", "party", "VIP", "entertainment"],
        "brand_colors": ["#0a0a0a", "#ff00ff", "#00ffff"],
    },
    "yacht": {
        "features": ["Private Charters", "Crew Service", "Gourmet Catering", "Water Sports"],
        "price_range": "$$$$",
        "keywords": ["yacht", "charter", "sailing", "luxury", "ocean"],
        "brand_colors": ["#0a192f", "#64ffda", "#ffffff"],
    },
    "villa": {
        "features": ["Private Pool", "Chef Service", "Concierge", "Ocean Views", "Staff"],
        "price_range": "$$$$",
        "keywords": ["villa", "vacation", "rental", "luxury", "private"],
        "brand_colors": ["#2d3436", "#dfe6e9", "#d4af37"],
    },
    "spa": {
        "features": ["Massage Therapy", "Facials", "Wellness Programs", "Sauna", "Pool"],
        "price_range": "$$$",
        "keywords": ["spa", "wellness", "relaxation", "massage", "beauty"],
        "brand_colors": ["#f5f5f5", "#7f8c8d", "#27ae60"],
    },
    "tour": {
        "features": ["Guided Tours", "Private Groups", "Local Experts", "Transportation"],
        "price_range": "$$",
        "keywords": ["tour", "experience", "adventure", "guide", "explore"],
        "brand_colors": ["#2c3e50", "#e74c3c", "#f39c12"],
    },
    "hospitality": {
        "features": ["Premium Service", "Exclusive Access", "Personalized Experience"],
        "price_range": "$$$",
        "keywords": ["luxury", "service", "exclusive", "premium", "hospitality"],
        "brand_colors": DEFAULT_BRAND_COLORS,
    },
}

SECTORS = tuple(SECTOR_DEFAULTS)


def fallback_research(business_name: str, sector: Optional[str] = None) -> BusinessResearch:
    """Deterministic profile built from the sector table."""
    sector = (sector or DEFAULT_SECTOR).lower()
    defaults = SECTOR_DEFAULTS.get(sector, SECTOR_DEFAULTS[DEFAULT_SECTOR])
    return BusinessResearch(
        name=business_name,
        description=(
            f"{business_name} is a premier {sector} establishment offering "
            f"exceptional experiences and world-class service."
        ),
        sector=sector,
        features=list(defaults["features"]),
        images=["Hero image", "Interior shot", "Signature experience", "Team"],
        reviews=BusinessReviews(
            rating=4.8,
            count=127,
            highlights=["Exceptional service", "Unforgettable experience"],
        ),
        brand_colors=list(defaults["brand_colors"]),
        keywords=list(defaults["keywords"]),
        price_range=defaults["price_range"],
        source="fallback",
    )


async def research_business(
    llm: LLMClient,
    business_name: str,
    sector: Optional[str] = None,
    location: Optional[str] = None,
) -> BusinessResearch:
    query = " ".join(part for part in (business_name, sector, location) if part)
    prompt = RESEARCH_USER_PROMPT.format(
        business_name=business_name,
        query=query,
        sector=sector or "unknown - please determine",
    )

    result = await llm.complete(prompt, system=RESEARCH_SYSTEM_PROMPT, max_tokens=2000)
    if not result.success:
        logger.info(f"Research for '{business_name}' using fallback: {result.reason}")
        return fallback_research(business_name, sector)

    data = extract_json_object(result.payload)
    if data is None:
        logger.warning(f"Research reply for '{business_name}' had no JSON object")
        return fallback_research(business_name, sector)

    data = {key: value for key, value in data.items() if value is not None}
    data.setdefault("name", business_name)
    if not data.get("sector"):
        data["sector"] = sector or DEFAULT_SECTOR
    data["source"] = "ai"
    try:
        return BusinessResearch.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Research reply for '{business_name}' failed validation: {e.error_count()} errors")
        return fallback_research(business_name, sector)


def research_to_workflow_inputs(research: BusinessResearch, project_name: Optional[str] = None) -> dict[str, str]:
    """
    Inputs for the build automation workflow.

    GitHub caps workflow_dispatch at 10 inputs, so list fields are joined
    with "|" and only the first two brand colors are passed.
    """
    colors = research.brand_colors or DEFAULT_BRAND_COLORS
    return {
        "business_name": research.name,
        "project_name": project_name or slugify_project_name(research.name),
        "sector": research.sector,
        "description": research.description,
        "city": research.location.city,
        "country": research.location.country,
        "features": "|".join(research.features),
        "keywords": "|".join(research.keywords),
        "brand_primary": colors[0],
        "brand_accent": colors[1] if len(colors) > 1 else DEFAULT_BRAND_COLORS[1],
    }
