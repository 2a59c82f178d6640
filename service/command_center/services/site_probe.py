"""
Site probes: speed test, SEO audit, uptime.

Speed tests use Google PageSpeed Insights when GOOGLE_PAGESPEED_API_KEY is
set and fall back to a single timed GET otherwise. SEO and uptime checks fetch
the page directly.
"""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..config import Settings
from ..logging_config import get_logger

logger = get_logger("site_probe")

PAGESPEED_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
PAGESPEED_TIMEOUT_SECONDS = 60.0
PROBE_TIMEOUT_SECONDS = 10.0
USER_AGENT = "CommandCenter-SEO-Checker/1.0"

TITLE_RE = re.compile(r'<title[^>]*>([^<]+)</title>', re.IGNORECASE)
DESCRIPTION_RE = re.compile(
    r'<meta[^>]*name=["\']description["\'][^>]*content=["\']([^"\']+)["\']', re.IGNORECASE
)
H1_RE = re.compile(r'<h1[^>]*>[\s\S]*?</h1>', re.IGNORECASE)
IMG_RE = re.compile(r'<img[^>]*>', re.IGNORECASE)
IMG_ALT_RE = re.compile(r'alt=["\'][^"\']+["\']', re.IGNORECASE)
OPEN_GRAPH_RE = re.compile(r'<meta[^>]*property=["\']og:', re.IGNORECASE)
VIEWPORT_RE = re.compile(r'<meta[^>]*name=["\']viewport["\']', re.IGNORECASE)
JSON_LD_RE = re.compile(r'<script[^>]*type=["\']application/ld\+json["\']', re.IGNORECASE)


@dataclass
class SpeedMetrics:
    lcp: int = 0    # Largest Contentful Paint (ms)
    fid: int = 0    # Max potential First Input Delay (ms)
    cls: float = 0  # Cumulative Layout Shift
    ttfb: int = 0   # Time to First Byte (ms)
    fcp: int = 0    # First Contentful Paint (ms)


@dataclass
class SpeedScores:
    performance: int = 0
    accessibility: int = 0
    best_practices: int = 0
    seo: int = 0


@dataclass
class SpeedTestResult:
    success: bool
    url: str
    metrics: SpeedMetrics = field(default_factory=SpeedMetrics)
    scores: SpeedScores = field(default_factory=SpeedScores)
    recommendations: list[str] = field(default_factory=list)
    source: str = "basic"
    error: Optional[str] = None


@dataclass
class SeoChecks:
    title_length: int = 0
    description_length: int = 0
    h1_count: int = 0
    images_total: int = 0
    images_with_alt: int = 0
    https: bool = False
    mobile: bool = False
    open_graph: bool = False
    structured_data: bool = False

    @property
    def title_present(self) -> bool:
        return self.title_length > 0

    @property
    def title_optimal(self) -> bool:
        return 30 <= self.title_length <= 60

    @property
    def description_present(self) -> bool:
        return self.description_length > 0

    @property
    def description_optimal(self) -> bool:
        return 120 <= self.description_length <= 160


@dataclass
class SeoResult:
    success: bool
    url: str
    score: int = 0
    checks: SeoChecks = field(default_factory=SeoChecks)
    recommendations: list[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class UptimeResult:
    url: str
    status: str  # "up" | "degraded" | "down"
    response_time_ms: int = 0
    status_code: int = 0
    checked_at: str = ""
    error: Optional[str] = None


def analyze_seo(url: str, html: str) -> tuple[int, SeoChecks, list[str]]:
    """Score an HTML document out of 100 and list up to five fixes."""
    title_match = TITLE_RE.search(html)
    title = title_match.group(1).strip() if title_match else ""
    description_match = DESCRIPTION_RE.search(html)
    description = description_match.group(1).strip() if description_match else ""
    images = IMG_RE.findall(html)

    checks = SeoChecks(
        title_length=len(title),
        description_length=len(description),
        h1_count=len(H1_RE.findall(html)),
        images_total=len(images),
        images_with_alt=sum(1 for img in images if IMG_ALT_RE.search(img)),
        https=url.lower().startswith("https"),
        mobile=bool(VIEWPORT_RE.search(html)),
        open_graph=bool(OPEN_GRAPH_RE.search(html)),
        structured_data=bool(JSON_LD_RE.search(html)),
    )

    score = 0
    if checks.title_present:
        score += 15
    if checks.title_optimal:
        score += 5
    if checks.description_present:
        score += 15
    if checks.description_optimal:
        score += 5
    if checks.h1_count == 1:
        score += 10
    if checks.images_with_alt == checks.images_total:
        score += 10
    if checks.https:
        score += 15
    if checks.mobile:
        score += 10
    if checks.open_graph:
        score += 10
    if checks.structured_data:
        score += 5

    recommendations = []
    if not checks.title_present:
        recommendations.append("❌ Add a <title> tag")
    elif not checks.title_optimal:
        recommendations.append("⚠️ Title should be 30-60 characters")
    if not checks.description_present:
        recommendations.append("❌ Add a meta description")
    elif not checks.description_optimal:
        recommendations.append("⚠️ Description should be 120-160 characters")
    if checks.h1_count == 0:
        recommendations.append("❌ Add an <h1> heading")
    elif checks.h1_count > 1:
        recommendations.append("⚠️ Use only one <h1> per page")
    missing_alt = checks.images_total - checks.images_with_alt
    if missing_alt > 0:
        recommendations.append(f"⚠️ {missing_alt} images missing alt text")
    if not checks.https:
        recommendations.append("❌ Enable HTTPS")
    if not checks.mobile:
        recommendations.append("❌ Add viewport meta tag for mobile")
    if not checks.open_graph:
        recommendations.append("💡 Add Open Graph tags for social sharing")
    if not checks.structured_data:
        recommendations.append("💡 Add JSON-LD structured data")

    return score, checks, recommendations[:5]


class SiteProbe:
    """HTTP checks against public sites."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self.pagespeed_key = settings.google_pagespeed_api_key
        self.http = http

    async def speed_test(self, url: str) -> SpeedTestResult:
        if not self.pagespeed_key:
            return await self._basic_speed_test(url)

        try:
            response = await self.http.get(
                PAGESPEED_URL,
                params={"url": url, "key": self.pagespeed_key, "strategy": "mobile"},
                timeout=PAGESPEED_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"PageSpeed failed for {url}: {e.__class__.__name__}, using basic test")
            return await self._basic_speed_test(url)

        if not isinstance(data, dict):
            logger.warning(f"PageSpeed returned an unexpected payload for {url}, using basic test")
            return await self._basic_speed_test(url)

        lighthouse = data.get("lighthouseResult") or {}
        audits = lighthouse.get("audits") or {}
        categories = lighthouse.get("categories") or {}

        def audit_value(name: str) -> float:
            return (audits.get(name) or {}).get("numericValue") or 0

        def category_score(name: str) -> int:
            return round(((categories.get(name) or {}).get("score") or 0) * 100)

        return SpeedTestResult(
            success=True,
            url=url,
            metrics=SpeedMetrics(
                lcp=round(audit_value("largest-contentful-paint")),
                fid=round(audit_value("max-potential-fid")),
                cls=round(audit_value("cumulative-layout-shift"), 3),
                ttfb=round(audit_value("server-response-time")),
                fcp=round(audit_value("first-contentful-paint")),
            ),
            scores=SpeedScores(
                performance=category_score("performance"),
                accessibility=category_score("accessibility"),
                best_practices=category_score("best-practices"),
                seo=category_score("seo"),
            ),
            recommendations=_failed_audits(audits),
            source="pagespeed",
        )

    async def _basic_speed_test(self, url: str) -> SpeedTestResult:
        """Timing-only test: TTFB from headers, total from full body download."""
        start = time.monotonic()
        try:
            async with self.http.stream("GET", url, timeout=PROBE_TIMEOUT_SECONDS) as response:
                ttfb = int((time.monotonic() - start) * 1000)
                await response.aread()
            total = int((time.monotonic() - start) * 1000)
        except httpx.HTTPError as e:
            return SpeedTestResult(success=False, url=url, error=f"Speed test failed: {e.__class__.__name__}")

        performance = max(0, min(100, round(100 - total / 50)))
        return SpeedTestResult(
            success=True,
            url=url,
            metrics=SpeedMetrics(lcp=total, ttfb=ttfb, fcp=ttfb + 100),
            scores=SpeedScores(performance=performance),
            recommendations=[
                "⚠️ TTFB > 600ms - consider CDN or server optimization" if ttfb > 600 else "✅ Good TTFB",
                "⚠️ Total load > 3s - optimize resources" if total > 3000 else "✅ Good load time",
                "💡 Add GOOGLE_PAGESPEED_API_KEY for full Lighthouse audit",
            ],
        )

    async def seo_audit(self, url: str) -> SeoResult:
        try:
            response = await self.http.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=PROBE_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            return SeoResult(success=False, url=url, error=f"SEO check failed: {e.__class__.__name__}")

        if not response.is_success:
            return SeoResult(success=False, url=url, error=f"HTTP {response.status_code}")

        score, checks, recommendations = analyze_seo(url, response.text)
        return SeoResult(success=True, url=url, score=score, checks=checks, recommendations=recommendations)

    async def uptime(self, url: str) -> UptimeResult:
        checked_at = datetime.now(timezone.utc).isoformat()
        start = time.monotonic()
        try:
            response = await self.http.head(url, timeout=PROBE_TIMEOUT_SECONDS, follow_redirects=True)
        except httpx.HTTPError as e:
            return UptimeResult(url=url, status="down", checked_at=checked_at, error=e.__class__.__name__)
        elapsed = int((time.monotonic() - start) * 1000)

        if not response.is_success:
            status = "down"
        elif elapsed > 2000:
            status = "degraded"
        else:
            status = "up"

        return UptimeResult(
            url=url,
            status=status,
            response_time_ms=elapsed,
            status_code=response.status_code,
            checked_at=checked_at,
        )


def _failed_audits(audits: dict) -> list[str]:
    """Titles of the five lowest-scoring Lighthouse audits below 0.9."""
    failed = [
        audit for audit in audits.values()
        if isinstance(audit, dict) and audit.get("score") is not None and audit["score"] < 0.9
    ]
    failed.sort(key=lambda audit: audit["score"])
    return [f"• {audit.get('title', 'Unnamed audit')}" for audit in failed[:5]]
