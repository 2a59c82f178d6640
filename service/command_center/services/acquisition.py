"""
Client acquisition: ROI estimates, sales pitches, proposals and competitor
analysis for prospective clients.

ROI and proposals are pure arithmetic over the pricing and sector tables.
Pitches and competitor analyses ask Claude and fall back to fixed templates.
"""

import math
from typing import Optional

from pydantic import ValidationError

from ..agents.prompts import COMPETITORS_PROMPT, PITCH_PROMPT
from ..agents.schemas import (
    BusinessResearch,
    Competitor,
    CompetitorAnalysis,
    Investment,
    Pitch,
    Proposal,
    RoiCalculation,
)
from ..logging_config import get_logger
from .llm import LLMClient, extract_json_object

logger = get_logger("acquisition")

DEFAULT_TIER = "professional"
DEFAULT_SECTOR = "hospitality"
DEFAULT_LOCATION = "Cartagena"

PRICING = {
    "starter": {"name": "Starter", "setup": 997, "monthly": 497},
    "professional": {"name": "Professional", "setup": 1997, "monthly": 997},
    "enterprise": {"name": "Enterprise", "setup": 4997, "monthly": 1997},
}

# Average booking value (USD) and bookings lost per month to a weak web presence
SECTOR_VALUES = {
    "hotel": (250, 15),
    "restaurant": (75, 30),
    "nightclub": (200, 20),
    "yacht": (2500, 4),
    "villa": (500, 8),
    "spa": (150, 12),
    "tour": (100, 25),
    "hospitality": (150, 15),
}

DELIVERABLES = {
    "starter": [
        "Custom website (5 pages)",
        "WhatsApp integration",
        "Mobile-responsive design",
        "Basic SEO optimization",
        "Contact form",
    ],
    "professional": [
        "Custom website (10+ pages)",
        "AI concierge on WhatsApp",
        "Online booking system",
        "Multi-language (ES/EN)",
        "Advanced SEO + analytics",
        "CRM integration",
    ],
    "enterprise": [
        "Unlimited pages",
        "AI concierge on WhatsApp and web",
        "Full booking engine",
        "Custom integrations",
        "Multi-language (ES/EN/PT)",
        "Dedicated support",
        "White-label option",
    ],
}

NEXT_STEPS = [
    "15-minute discovery call",
    "Custom demo for your business",
    "Proposal refinement based on your feedback",
    "Contract signing and project kickoff",
]

FALLBACK_PAIN_POINTS = [
    "Losing bookings to competitors with better websites",
    "Manual WhatsApp replies mean missed opportunities",
    "No 24/7 availability for international guests",
    "Website doesn't reflect a premium brand",
]

FALLBACK_OPPORTUNITIES = [
    "24/7 AI concierge as a differentiator",
    "Faster response times",
    "Better mobile experience",
]


def normalize_tier(tier: Optional[str]) -> Optional[str]:
    """Lowercased tier name if known, None otherwise. Missing tier means the default."""
    tier = (tier or DEFAULT_TIER).lower()
    return tier if tier in PRICING else None


def calculate_roi(sector: str, tier: str = DEFAULT_TIER) -> RoiCalculation:
    """
    Annual revenue lost vs. annual cost of the given tier.

    Unknown sectors use the generic hospitality figures; unknown tiers the
    default tier. payback_months is None when the monthly fee is not covered
    by the recovered revenue.
    """
    sector = sector.lower()
    tier = normalize_tier(tier) or DEFAULT_TIER
    avg_booking, monthly_lost = SECTOR_VALUES.get(sector, SECTOR_VALUES[DEFAULT_SECTOR])
    pricing = PRICING[tier]

    monthly_loss = avg_booking * monthly_lost
    annual_loss = monthly_loss * 12
    annual_cost = pricing["setup"] + pricing["monthly"] * 12
    monthly_gain = monthly_loss - pricing["monthly"]
    payback = max(1, math.ceil(pricing["setup"] / monthly_gain)) if monthly_gain > 0 else None

    return RoiCalculation(
        sector=sector,
        tier=pricing["name"],
        avg_booking_value=avg_booking,
        monthly_lost_bookings=monthly_lost,
        annual_loss=annual_loss,
        annual_cost=annual_cost,
        net_roi=annual_loss - annual_cost,
        roi_multiple=round(annual_loss / annual_cost, 1),
        payback_months=payback,
    )


def fallback_pitch(business_name: str, roi: RoiCalculation) -> Pitch:
    return Pitch(
        headline=f"{business_name}: Stop Losing ${roi.annual_loss:,}/Year to Bad Tech",
        pain_points=list(FALLBACK_PAIN_POINTS),
        solution="An AI-powered website and concierge that captures every booking opportunity around the clock.",
        call_to_action="Schedule a 15-minute demo to see how much lost revenue we can recover.",
        roi=roi,
        source="fallback",
    )


async def generate_pitch(
    llm: LLMClient,
    business_name: str,
    sector: str,
    research: Optional[BusinessResearch] = None,
) -> Pitch:
    roi = calculate_roi(sector)

    research_context = ""
    if research:
        research_context = (
            f"Business research:\n"
            f"- Description: {research.description}\n"
            f"- Features: {', '.join(research.features)}\n"
            f"- Review highlights: {', '.join(research.reviews.highlights)}\n"
        )

    prompt = PITCH_PROMPT.format(
        business_name=business_name,
        sector=sector,
        research_context=research_context,
        avg_booking_value=roi.avg_booking_value,
        monthly_lost_bookings=roi.monthly_lost_bookings,
        annual_loss=roi.annual_loss,
        annual_cost=roi.annual_cost,
        roi_multiple=roi.roi_multiple,
    )
    result = await llm.complete(prompt)
    if not result.success:
        logger.info(f"Pitch for '{business_name}' using fallback: {result.reason}")
        return fallback_pitch(business_name, roi)

    data = extract_json_object(result.payload)
    if data is None:
        return fallback_pitch(business_name, roi)

    try:
        return Pitch(
            headline=data.get("headline") or f"{business_name}: Recover Lost Revenue",
            pain_points=data.get("pain_points") or [],
            solution=data.get("solution") or "",
            call_to_action=data.get("call_to_action") or "Schedule a demo today",
            roi=roi,
        )
    except ValidationError:
        logger.warning(f"Pitch reply for '{business_name}' failed validation")
        return fallback_pitch(business_name, roi)


def generate_proposal(business_name: str, sector: str, tier: str = DEFAULT_TIER) -> Proposal:
    tier = normalize_tier(tier) or DEFAULT_TIER
    roi = calculate_roi(sector, tier)
    pricing = PRICING[tier]

    return Proposal(
        business_name=business_name,
        executive_summary=(
            f"A complete digital upgrade for {business_name}, built to capture lost revenue and "
            f"automate guest communication. Industry averages suggest {business_name} loses about "
            f"${roi.annual_loss:,} a year in missed bookings."
        ),
        problem_statement=(
            f"{roi.sector.capitalize()} businesses lose bookings to competitors with stronger digital "
            f"presence, to slow manual replies, and to having no 24/7 availability for guests abroad."
        ),
        solution=(
            f"The {pricing['name']} package pairs a new website with an AI concierge that answers "
            f"inquiries in Spanish and English around the clock."
        ),
        deliverables=list(DELIVERABLES[tier]),
        timeline="4-6 weeks from contract signing to launch",
        investment=Investment(tier=pricing["name"], setup=pricing["setup"], monthly=pricing["monthly"]),
        roi=roi,
        next_steps=list(NEXT_STEPS),
    )


def fallback_competitors(business_name: str, location: str) -> CompetitorAnalysis:
    return CompetitorAnalysis(
        business_name=business_name,
        location=location,
        opportunities=list(FALLBACK_OPPORTUNITIES),
        source="fallback",
    )


async def analyze_competitors(
    llm: LLMClient,
    business_name: str,
    sector: str,
    location: Optional[str] = None,
) -> CompetitorAnalysis:
    location = location or DEFAULT_LOCATION
    prompt = COMPETITORS_PROMPT.format(business_name=business_name, sector=sector, location=location)

    result = await llm.complete(prompt)
    if not result.success:
        logger.info(f"Competitor analysis for '{business_name}' using fallback: {result.reason}")
        return fallback_competitors(business_name, location)

    data = extract_json_object(result.payload)
    raw_competitors = data.get("competitors") if data is not None else None
    if not isinstance(raw_competitors, list):
        if data is not None:
            logger.warning(f"Competitor reply for '{business_name}' has no competitor list")
        return fallback_competitors(business_name, location)

    competitors = []
    for item in raw_competitors:
        try:
            competitors.append(Competitor.model_validate(item))
        except ValidationError:
            continue

    raw_opportunities = data.get("opportunities")
    if not isinstance(raw_opportunities, list):
        raw_opportunities = []
    opportunities = [str(item) for item in raw_opportunities]
    return CompetitorAnalysis(
        business_name=business_name,
        location=location,
        competitors=competitors,
        opportunities=opportunities or list(FALLBACK_OPPORTUNITIES),
    )
