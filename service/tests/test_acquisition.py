"""
Tests for ROI math, proposals, pitches and competitor analysis.
"""

import json

import pytest

from command_center.services import acquisition

from conftest import ScriptedLLM


class TestCalculateRoi:
    """Tests for calculate_roi function."""

    def test_hospitality_professional(self):
        roi = acquisition.calculate_roi("hospitality", "professional")
        assert roi.annual_loss == 27000
        assert roi.annual_cost == 13961
        assert roi.net_roi == 13039
        assert roi.roi_multiple == 1.9
        assert roi.payback_months == 2
        assert roi.tier == "Professional"

    def test_yacht_enterprise(self):
        roi = acquisition.calculate_roi("yacht", "enterprise")
        assert roi.annual_loss == 120000
        assert roi.annual_cost == 28961
        assert roi.payback_months == 1

    def test_payback_none_when_fee_not_covered(self):
        roi = acquisition.calculate_roi("spa", "enterprise")
        assert roi.payback_months is None
        assert roi.net_roi == 21600 - 28961

    def test_unknown_sector_uses_hospitality_figures(self):
        roi = acquisition.calculate_roi("bakery")
        assert roi.avg_booking_value == 150
        assert roi.monthly_lost_bookings == 15
        assert roi.sector == "bakery"

    def test_sector_case_insensitive(self):
        assert acquisition.calculate_roi("HOTEL").annual_loss == 45000

    def test_unknown_tier_uses_default(self):
        assert acquisition.calculate_roi("hotel", "platinum").tier == "Professional"


class TestNormalizeTier:

    def test_default(self):
        assert acquisition.normalize_tier(None) == "professional"

    def test_case(self):
        assert acquisition.normalize_tier("Enterprise") == "enterprise"

    def test_unknown(self):
        assert acquisition.normalize_tier("platinum") is None


class TestProposal:

    def test_deliverables_follow_tier(self):
        proposal = acquisition.generate_proposal("Villa Sol", "villa", "starter")
        assert proposal.deliverables == acquisition.DELIVERABLES["starter"]
        assert proposal.investment.setup == 997
        assert proposal.investment.monthly == 497
        assert proposal.roi.sector == "villa"

    def test_business_name_in_summary(self):
        proposal = acquisition.generate_proposal("Villa Sol", "villa")
        assert "Villa Sol" in proposal.executive_summary
        assert proposal.next_steps == acquisition.NEXT_STEPS


class TestPitch:

    @pytest.mark.asyncio
    async def test_fallback_without_llm(self):
        pitch = await acquisition.generate_pitch(ScriptedLLM(), "Hotel Boutique", "hotel")
        assert pitch.source == "fallback"
        assert "$45,000" in pitch.headline
        assert pitch.roi.annual_loss == 45000

    @pytest.mark.asyncio
    async def test_ai_pitch_keeps_computed_roi(self):
        reply = json.dumps({
            "headline": "Fill every room",
            "pain_points": ["Slow replies"],
            "solution": "AI concierge",
            "call_to_action": "Book a demo",
        })
        llm = ScriptedLLM(reply)

        pitch = await acquisition.generate_pitch(llm, "Hotel Boutique", "hotel")

        assert pitch.source == "ai"
        assert pitch.headline == "Fill every room"
        assert pitch.roi.annual_loss == 45000
        assert "$45,000" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_back(self):
        pitch = await acquisition.generate_pitch(ScriptedLLM("Sorry."), "Hotel Boutique", "hotel")
        assert pitch.source == "fallback"


class TestCompetitors:

    @pytest.mark.asyncio
    async def test_fallback_default_location(self):
        analysis = await acquisition.analyze_competitors(ScriptedLLM(), "Café Del Mar", "restaurant")
        assert analysis.source == "fallback"
        assert analysis.location == "Cartagena"
        assert analysis.competitors == []
        assert analysis.opportunities

    @pytest.mark.asyncio
    async def test_malformed_competitors_skipped(self):
        reply = json.dumps({
            "competitors": [{"name": "Bar Alfresco", "strengths": ["View"]}, {"strengths": ["nameless"]}],
            "opportunities": ["Online booking"],
        })
        analysis = await acquisition.analyze_competitors(
            ScriptedLLM(reply), "Café Del Mar", "restaurant", "Santa Marta"
        )
        assert [c.name for c in analysis.competitors] == ["Bar Alfresco"]
        assert analysis.opportunities == ["Online booking"]
        assert analysis.location == "Santa Marta"

    @pytest.mark.asyncio
    async def test_competitors_not_a_list_falls_back(self):
        reply = json.dumps({"competitors": 3, "opportunities": ["x"]})
        analysis = await acquisition.analyze_competitors(ScriptedLLM(reply), "Villa Sol", "villa")
        assert analysis.source == "fallback"
        assert analysis.competitors == []
        assert analysis.opportunities == acquisition.FALLBACK_OPPORTUNITIES

    @pytest.mark.asyncio
    async def test_opportunities_string_not_split_into_characters(self):
        reply = json.dumps({"competitors": [{"name": "Casa Azul"}], "opportunities": "Online booking"})
        analysis = await acquisition.analyze_competitors(ScriptedLLM(reply), "Villa Sol", "villa")
        assert [c.name for c in analysis.competitors] == ["Casa Azul"]
        assert analysis.opportunities == acquisition.FALLBACK_OPPORTUNITIES
