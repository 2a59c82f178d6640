"""
Tests for SEO scoring, uptime and speed probes.
"""

from types import SimpleNamespace

import httpx
import pytest

from command_center.services import site_probe
from command_center.services.site_probe import SiteProbe, analyze_seo

from conftest import make_settings

GOOD_PAGE = f"""
<html><head>
<title>Café Del Mar | Sunset Bar in Cartagena</title>
<meta name="description" content="{'A' * 130}">
<meta name="viewport" content="width=device-width">
<meta property="og:title" content="Café Del Mar">
<script type="application/ld+json">{{}}</script>
</head><body>
<h1>Welcome</h1>
<img src="a.jpg" alt="Terrace at sunset">
</body></html>
"""


def make_probe(handler, **overrides):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SiteProbe(make_settings(**overrides), http)


def fake_clock(*readings):
    return SimpleNamespace(monotonic=iter(readings).__next__)


class TestAnalyzeSeo:
    """Tests for analyze_seo function."""

    def test_perfect_page(self):
        score, checks, recommendations = analyze_seo("https://cafedelmar.co", GOOD_PAGE)
        assert score == 100
        assert checks.h1_count == 1
        assert checks.images_with_alt == checks.images_total == 1
        assert recommendations == []

    def test_empty_page_over_http(self):
        score, checks, recommendations = analyze_seo("http://cafedelmar.co", "")
        # no images counts as all images having alt text
        assert score == 10
        assert checks.https is False
        assert len(recommendations) == 5
        assert recommendations[0] == "❌ Add a <title> tag"

    def test_short_title_and_two_h1(self):
        html = "<title>Café</title><h1>a</h1><h1>b</h1><img src=x.jpg>"
        score, checks, recommendations = analyze_seo("https://x.co", html)
        assert checks.title_present and not checks.title_optimal
        assert "⚠️ Title should be 30-60 characters" in recommendations
        assert "⚠️ Use only one <h1> per page" in recommendations
        assert "⚠️ 1 images missing alt text" in recommendations
        assert score == 15 + 15


class TestUptime:

    @pytest.mark.asyncio
    async def test_up(self, monkeypatch):
        monkeypatch.setattr(site_probe, "time", fake_clock(10.0, 10.25))
        probe = make_probe(lambda request: httpx.Response(200))

        result = await probe.uptime("https://cafedelmar.co")

        assert result.status == "up"
        assert result.status_code == 200
        assert result.response_time_ms == 250

    @pytest.mark.asyncio
    async def test_degraded_when_slow(self, monkeypatch):
        monkeypatch.setattr(site_probe, "time", fake_clock(10.0, 12.5))
        probe = make_probe(lambda request: httpx.Response(200))

        result = await probe.uptime("https://cafedelmar.co")

        assert result.status == "degraded"

    @pytest.mark.asyncio
    async def test_down_on_error_status(self):
        probe = make_probe(lambda request: httpx.Response(503))
        result = await probe.uptime("https://cafedelmar.co")
        assert result.status == "down"
        assert result.status_code == 503

    @pytest.mark.asyncio
    async def test_down_on_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await make_probe(handler).uptime("https://cafedelmar.co")

        assert result.status == "down"
        assert result.error == "ConnectError"

    @pytest.mark.asyncio
    async def test_uses_head(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(200)

        await make_probe(handler).uptime("https://cafedelmar.co")
        assert methods == ["HEAD"]


class TestSeoAudit:

    @pytest.mark.asyncio
    async def test_audit(self):
        probe = make_probe(lambda request: httpx.Response(200, text=GOOD_PAGE))
        result = await probe.seo_audit("https://cafedelmar.co")
        assert result.success
        assert result.score == 100

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        probe = make_probe(lambda request: httpx.Response(404, text="gone"))
        result = await probe.seo_audit("https://cafedelmar.co")
        assert result.success is False
        assert result.error == "HTTP 404"


class TestSpeedTest:

    @pytest.mark.asyncio
    async def test_basic_without_pagespeed_key(self, monkeypatch):
        monkeypatch.setattr(site_probe, "time", fake_clock(0.0, 0.25, 1.0))
        probe = make_probe(lambda request: httpx.Response(200, text="<html></html>"))

        result = await probe.speed_test("https://cafedelmar.co")

        assert result.success
        assert result.source == "basic"
        assert result.metrics.ttfb == 250
        assert result.metrics.lcp == 1000
        assert result.scores.performance == 80
        assert len(result.recommendations) == 3

    @pytest.mark.asyncio
    async def test_basic_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await make_probe(handler).speed_test("https://cafedelmar.co")

        assert result.success is False
        assert "ConnectError" in result.error

    @pytest.mark.asyncio
    async def test_pagespeed(self):
        lighthouse = {
            "lighthouseResult": {
                "categories": {"performance": {"score": 0.87}, "seo": {"score": 1}},
                "audits": {
                    "largest-contentful-paint": {"numericValue": 2450.4, "score": 0.8, "title": "LCP"},
                    "server-response-time": {"numericValue": 120, "score": 1, "title": "TTFB"},
                    "unused-javascript": {"score": 0.2, "title": "Reduce unused JavaScript"},
                },
            }
        }

        def handler(request):
            assert request.url.host == "www.googleapis.com"
            assert request.url.params["key"] == "ps-key"
            return httpx.Response(200, json=lighthouse)

        result = await make_probe(handler, google_pagespeed_api_key="ps-key").speed_test("https://cafedelmar.co")

        assert result.source == "pagespeed"
        assert result.scores.performance == 87
        assert result.scores.seo == 100
        assert result.metrics.lcp == 2450
        assert result.recommendations == ["• Reduce unused JavaScript", "• LCP"]

    @pytest.mark.asyncio
    async def test_pagespeed_failure_falls_back_to_basic(self):
        def handler(request):
            if request.url.host == "www.googleapis.com":
                return httpx.Response(500)
            return httpx.Response(200, text="ok")

        result = await make_probe(handler, google_pagespeed_api_key="ps-key").speed_test("https://cafedelmar.co")

        assert result.success
        assert result.source == "basic"

    @pytest.mark.asyncio
    async def test_pagespeed_list_payload_falls_back_to_basic(self):
        def handler(request):
            if request.url.host == "www.googleapis.com":
                return httpx.Response(200, json=["unexpected"])
            return httpx.Response(200, text="ok")

        result = await make_probe(handler, google_pagespeed_api_key="ps-key").speed_test("https://cafedelmar.co")

        assert result.success
        assert result.source == "basic"
