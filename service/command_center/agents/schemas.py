from pydantic import BaseModel, Field
from typing import Optional


class BusinessLocation(BaseModel):
    city: str = "Cartagena"
    country: str = "Colombia"
    address: Optional[str] = None


class BusinessContact(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class BusinessSocial(BaseModel):
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    tiktok: Optional[str] = None
    whatsapp: Optional[str] = None

    def any(self) -> bool:
        return any(self.model_dump().values())


class BusinessReviews(BaseModel):
    rating: Optional[float] = None
    count: Optional[int] = None
    highlights: list[str] = Field(default_factory=list)


class BusinessResearch(BaseModel):
    name: str
    description: str = ""
    sector: str = "hospitality"
    location: BusinessLocation = Field(default_factory=BusinessLocation)
    contact: BusinessContact = Field(default_factory=BusinessContact)
    social: BusinessSocial = Field(default_factory=BusinessSocial)
    hours: Optional[str] = None
    price_range: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    reviews: BusinessReviews = Field(default_factory=BusinessReviews)
    competitors: list[str] = Field(default_factory=list)
    brand_colors: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    source: str = "ai"  # "ai" | "fallback"


# Client acquisition

class RoiCalculation(BaseModel):
    sector: str
    tier: str
    avg_booking_value: int
    monthly_lost_bookings: int
    annual_loss: int
    annual_cost: int
    net_roi: int
    roi_multiple: float
    payback_months: Optional[int] = None  # None when the monthly fee exceeds recovered revenue


class Pitch(BaseModel):
    headline: str
    pain_points: list[str] = Field(default_factory=list)
    solution: str = ""
    call_to_action: str = ""
    roi: RoiCalculation
    source: str = "ai"


class Investment(BaseModel):
    tier: str
    setup: int
    monthly: int


class Proposal(BaseModel):
    business_name: str
    executive_summary: str
    problem_statement: str
    solution: str
    deliverables: list[str]
    timeline: str
    investment: Investment
    roi: RoiCalculation
    next_steps: list[str]


class Competitor(BaseModel):
    name: str
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class CompetitorAnalysis(BaseModel):
    business_name: str
    location: str
    competitors: list[Competitor] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    source: str = "ai"


# Content

class CopyResult(BaseModel):
    section: str
    spanish: str = ""
    english: str = ""
    source: str = "ai"


class TranslationResult(BaseModel):
    original: str
    translated: str
    from_lang: str
    to_lang: str


# Project analysis

class AnalysisResult(BaseModel):
    project: str
    analysis: str = ""
    fixes: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
