"""
Chat rendering for command replies.

Every function here is pure and returns Telegram HTML. Values that come from
the user or from upstream APIs go through escape() before interpolation.
"""

import html
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..agents.schemas import (
    AnalysisResult,
    BusinessResearch,
    CompetitorAnalysis,
    CopyResult,
    Pitch,
    Proposal,
    RoiCalculation,
    TranslationResult,
)
from ..results import AdapterResult, FailureKind
from ..services.github import Repository, WorkflowRun
from ..services.site_probe import SeoResult, SpeedTestResult, UptimeResult
from ..services.vercel import Deployment, Domain, EnvVar, Project, RuntimeLogEntry

MAX_BODY_CHARS = 3500
MAX_ECHO_CHARS = 100
TRUNCATED_SUFFIX = "\n…(truncated)"

TAG_RE = re.compile(r"<(/?)([a-zA-Z]+)[^<>]*>")
# An unfinished tag or entity at the very end of a cut
PARTIAL_MARKUP_RE = re.compile(r"(<[^<>]*|&#?[a-zA-Z0-9]*)$")

STATUS_ICONS = {
    "READY": "✅",
    "ERROR": "❌",
    "BUILDING": "🔄",
    "QUEUED": "⏳",
    "CANCELED": "🚫",
    "INITIALIZING": "🔧",
}
UNKNOWN_STATUS_ICON = "❓"

UPTIME_ICONS = {"up": "🟢", "degraded": "🟡", "down": "🔴"}

WORKFLOW_ICONS = {
    "success": "✅",
    "failure": "❌",
    "cancelled": "🚫",
    "in_progress": "🔄",
    "queued": "⏳",
}


def escape(value, limit: int = MAX_ECHO_CHARS) -> str:
    """HTML-escape a value for interpolation, bounded to `limit` characters first."""
    text = "" if value is None else str(value)
    if limit and len(text) > limit:
        text = text[:limit] + "…"
    return html.escape(text, quote=False)


def close_open_tags(text: str) -> str:
    """Append closing tags for any tag left open in `text`."""
    stack = []
    for match in TAG_RE.finditer(text):
        closing, name = match.group(1), match.group(2).lower()
        if not closing:
            stack.append(name)
        elif name in stack:
            del stack[len(stack) - 1 - stack[::-1].index(name):]
    return text + "".join(f"</{name}>" for name in reversed(stack))


def truncate(text: str, limit: int = MAX_BODY_CHARS, markup: bool = True) -> str:
    """
    Keep the leading whole lines of a long body that fit in `limit` characters.

    A first line longer than `limit` is cut mid-line. With markup=True a
    partial tag or entity at the cut is dropped and open tags are closed, so
    the result stays valid Telegram HTML.
    """
    if len(text) <= limit:
        return text
    cut = text.rfind("\n", 0, limit + 1)
    head = text[:cut] if cut > 0 else text[:limit]
    if markup:
        head = close_open_tags(PARTIAL_MARKUP_RE.sub("", head))
    return head + TRUNCATED_SUFFIX


def status_icon(state: Optional[str]) -> str:
    return STATUS_ICONS.get((state or "").upper(), UNKNOWN_STATUS_ICON)


def format_timestamp(ms: Optional[int]) -> str:
    if not ms:
        return "unknown time"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def format_failure(result: AdapterResult, context: Optional[str] = None) -> str:
    """One ❌/⚙️ line for a failed adapter result."""
    prefix = f"{escape(context)}: " if context else ""
    reason = escape(result.reason or "Unknown error", limit=300)
    if result.kind == FailureKind.CONFIGURATION:
        return f"⚙️ Not configured: {prefix}{reason}"
    if result.kind == FailureKind.NOT_FOUND:
        return f"❌ Not found: {prefix}{reason}"
    return f"❌ Error: {prefix}{reason}"


def format_usage(usage: str, example: Optional[str] = None) -> str:
    text = f"Usage: <code>{html.escape(usage, quote=False)}</code>"
    if example:
        text += f"\nExample: <code>{html.escape(example, quote=False)}</code>"
    return text


def format_invalid(what: str, value: str, rule: str) -> str:
    return f"❌ Invalid {what} <code>{escape(value)}</code>: {rule}"


def _bullets(items: Iterable[str], limit: int = 5, bullet: str = "•") -> str:
    return "\n".join(f"  {bullet} {escape(item, limit=300)}" for item in list(items)[:limit])


# =========================================================================
# HELP
# =========================================================================

FAMILY_TITLES = {
    "info": "📊 Info",
    "mutating": "🚀 Actions",
    "ai": "🤖 AI & Analytics",
}


def format_help(commands) -> str:
    """Command overview grouped by family, in registration order."""
    sections = []
    for family, title in FAMILY_TITLES.items():
        lines = [
            f"<code>{html.escape(command.usage, quote=False)}</code> - {html.escape(command.description, quote=False)}"
            for command in commands
            if command.family == family
        ]
        if lines:
            sections.append(f"<b>{title}</b>\n" + "\n".join(lines))
    return "🤖 <b>Command Center</b>\n\n" + "\n\n".join(sections)


def format_capabilities(capabilities: dict[str, bool]) -> str:
    lines = [f"{'✅' if enabled else '⚙️'} {name}" for name, enabled in capabilities.items()]
    return "🏓 <b>Pong</b>\n\n" + "\n".join(lines)


# =========================================================================
# VERCEL
# =========================================================================

def format_projects(projects: list[Project]) -> str:
    if not projects:
        return "📭 No projects found."
    lines = []
    for project in projects:
        latest = project.latest_deployments[0] if project.latest_deployments else None
        icon = status_icon(latest.state) if latest else UNKNOWN_STATUS_ICON
        lines.append(f"{icon} <code>{escape(project.name)}</code>")
    return truncate(f"📦 <b>Projects ({len(projects)})</b>\n\n" + "\n".join(lines))


def format_deployment(deployment: Deployment) -> str:
    line = f"{status_icon(deployment.state)} {escape(deployment.state)}"
    if deployment.target:
        line += f" ({escape(deployment.target)})"
    line += f"\n   🔗 {escape(deployment.https_url, limit=200)}"
    if deployment.branch:
        line += f"\n   🌿 {escape(deployment.branch)}"
    line += f"\n   📅 {format_timestamp(deployment.created_at)}"
    return line


def format_status(project: Project, deployments: list[Deployment]) -> str:
    header = f"📦 <b>{escape(project.name)}</b>"
    if not deployments:
        return f"{header}\n\nNo deployments yet."
    body = "\n\n".join(format_deployment(d) for d in deployments)
    return f"{header}\n\n<b>Recent Deployments:</b>\n\n{body}"


def format_build_logs(project_name: str, deployment: Deployment, lines: list[str], tail: int = 20) -> str:
    header = f"📜 <b>Build logs: {escape(project_name)}</b>\n{status_icon(deployment.state)} {escape(deployment.state)}"
    if not lines:
        return f"{header}\n\nNo build output available."
    body = html.escape(truncate("\n".join(lines[-tail:]), markup=False), quote=False)
    return f"{header}\n\n<pre>{body}</pre>"


def format_runtime_logs(project_name: str, entries: list[RuntimeLogEntry], level: Optional[str] = None) -> str:
    scope = f" ({escape(level)})" if level else ""
    header = f"🐛 <b>Runtime logs: {escape(project_name)}</b>{scope}"
    if not entries:
        return f"{header}\n\n✅ No matching log entries."
    lines = []
    for entry in entries[-20:]:
        path = f" {entry.request_path}" if entry.request_path else ""
        lines.append(f"[{entry.level.upper()}]{path} {entry.message}")
    body = html.escape(truncate("\n".join(lines), markup=False), quote=False)
    return f"{header}\n\n<pre>{body}</pre>"


def format_domains(project_name: str, domains: list[Domain]) -> str:
    header = f"🌐 <b>Domains: {escape(project_name)}</b>"
    if not domains:
        return f"{header}\n\nNo domains configured."
    lines = []
    for domain in domains:
        icon = "✅" if domain.verified else "⏳"
        branch = f" (branch: {escape(domain.git_branch)})" if domain.git_branch else ""
        lines.append(f"{icon} {escape(domain.name)}{branch}")
    return f"{header}\n\n" + "\n".join(lines)


def format_env_vars(project_name: str, env_vars: list[EnvVar]) -> str:
    """Names and targets only; values are never rendered."""
    header = f"🔐 <b>Environment: {escape(project_name)}</b>"
    if not env_vars:
        return f"{header}\n\nNo environment variables."
    lines = [
        f"<code>{escape(env.key)}</code> → {escape(', '.join(env.target) or 'all')}"
        for env in env_vars
    ]
    return truncate(f"{header}\n\n" + "\n".join(lines))


# =========================================================================
# GITHUB
# =========================================================================

def format_repos(repos: list[Repository], query: Optional[str] = None) -> str:
    scope = f" matching <code>{escape(query)}</code>" if query else ""
    if not repos:
        return f"📭 No repositories{scope}."
    lines = []
    for repo in repos[:30]:
        lock = "🔒 " if repo.private else ""
        description = f" - {escape(repo.description, limit=80)}" if repo.description else ""
        lines.append(f"{lock}<code>{escape(repo.name)}</code>{description}")
    more = f"\n\n…and {len(repos) - 30} more" if len(repos) > 30 else ""
    return truncate(f"📚 <b>Repositories{scope} ({len(repos)})</b>\n\n" + "\n".join(lines) + more)


def format_workflow_run(workflow: str, run: Optional[WorkflowRun]) -> str:
    header = f"⚙️ <b>{escape(workflow)}</b>"
    if run is None:
        return f"{header}\n\nNo runs yet."
    state = run.conclusion or run.status
    icon = WORKFLOW_ICONS.get(state, UNKNOWN_STATUS_ICON)
    lines = [f"{icon} {escape(state)}"]
    if run.head_branch:
        lines.append(f"🌿 {escape(run.head_branch)}")
    if run.created_at:
        lines.append(f"📅 {escape(run.created_at)}")
    if run.html_url:
        lines.append(f"🔗 {escape(run.html_url, limit=200)}")
    return f"{header}\n\n" + "\n".join(lines)


# =========================================================================
# AI
# =========================================================================

def format_research(research: BusinessResearch) -> str:
    lines = [f"🔍 <b>Research: {escape(research.name)}</b>"]
    if research.source == "fallback":
        lines.append("<i>Sector defaults (AI research unavailable)</i>")
    lines.append("")
    lines.append(f"📝 {escape(research.description, limit=500)}")
    lines.append("")
    lines.append(f"<b>📍 Location:</b> {escape(research.location.city)}, {escape(research.location.country)}")
    if research.location.address:
        lines.append(f"   {escape(research.location.address, limit=200)}")
    lines.append(f"<b>🏷️ Sector:</b> {escape(research.sector)}")
    if research.price_range:
        lines.append(f"<b>💰 Price:</b> {escape(research.price_range)}")

    if research.features:
        lines.append("\n<b>✨ Features:</b>")
        lines.append(_bullets(research.features))

    contact = research.contact
    if contact.website or contact.phone or contact.email:
        lines.append("\n<b>📞 Contact:</b>")
        if contact.website:
            lines.append(f"  🌐 {escape(contact.website, limit=200)}")
        if contact.phone:
            lines.append(f"  📱 {escape(contact.phone)}")
        if contact.email:
            lines.append(f"  ✉️ {escape(contact.email)}")

    if research.social.any():
        lines.append("\n<b>📱 Social:</b>")
        for label, value in (("IG", research.social.instagram), ("FB", research.social.facebook),
                             ("WA", research.social.whatsapp)):
            if value:
                lines.append(f"  {label}: {escape(value)}")

    if research.reviews.rating:
        lines.append(
            f"\n<b>⭐ Reviews:</b> {research.reviews.rating}/5 ({research.reviews.count or 0} reviews)"
        )
        if research.reviews.highlights:
            lines.append(f'  "{escape(research.reviews.highlights[0], limit=200)}"')

    if research.brand_colors:
        lines.append(f"\n<b>🎨 Brand Colors:</b> {escape(', '.join(research.brand_colors))}")
    if research.keywords:
        lines.append(f"<b>🔑 Keywords:</b> {escape(', '.join(research.keywords[:6]), limit=200)}")

    return truncate("\n".join(lines))


def format_roi(roi: RoiCalculation) -> str:
    payback = f"{roi.payback_months} months" if roi.payback_months else "n/a"
    return (
        f"💰 <b>ROI Analysis: {escape(roi.sector.upper())}</b> ({escape(roi.tier)})\n\n"
        f"<b>Current situation:</b>\n"
        f"• Avg booking value: ${roi.avg_booking_value:,}\n"
        f"• Lost bookings/month: ~{roi.monthly_lost_bookings}\n"
        f"• 📉 Annual revenue loss: <b>${roi.annual_loss:,}</b>\n\n"
        f"<b>With the service:</b>\n"
        f"• Annual investment: ${roi.annual_cost:,}\n"
        f"• 📈 Net ROI: <b>${roi.net_roi:,}</b>\n"
        f"• 🚀 Return: <b>{roi.roi_multiple}x</b>\n"
        f"• ⏱️ Payback: {payback}\n\n"
        f"<i>Based on industry averages for {escape(roi.sector)}</i>"
    )


def format_pitch(business_name: str, pitch: Pitch) -> str:
    return truncate(
        f"🎯 <b>{escape(pitch.headline, limit=200)}</b>\n\n"
        f"<b>Pain points:</b>\n{_bullets(pitch.pain_points)}\n\n"
        f"<b>Solution:</b>\n{escape(pitch.solution, limit=800)}\n\n"
        f"{format_roi(pitch.roi)}\n\n"
        f"<b>Next step for {escape(business_name)}:</b>\n{escape(pitch.call_to_action, limit=300)}"
    )


def format_proposal(proposal: Proposal) -> str:
    payback = f"{proposal.roi.payback_months} months" if proposal.roi.payback_months else "n/a"
    return truncate(
        f"📋 <b>Proposal for {escape(proposal.business_name)}: {escape(proposal.investment.tier)}</b>\n\n"
        f"<b>Executive summary:</b>\n{escape(proposal.executive_summary, limit=400)}\n\n"
        f"<b>Problem:</b>\n{escape(proposal.problem_statement, limit=400)}\n\n"
        f"<b>Solution:</b>\n{escape(proposal.solution, limit=400)}\n\n"
        f"<b>Deliverables:</b>\n{_bullets(proposal.deliverables, limit=10)}\n\n"
        f"<b>Investment:</b>\n"
        f"  • Setup: ${proposal.investment.setup:,}\n"
        f"  • Monthly: ${proposal.investment.monthly:,}\n\n"
        f"<b>Timeline:</b> {escape(proposal.timeline)}\n"
        f"<b>ROI:</b> {proposal.roi.roi_multiple}x return | payback {payback}\n\n"
        f"<b>Next steps:</b>\n{_bullets(proposal.next_steps)}"
    )


def format_competitors(analysis: CompetitorAnalysis) -> str:
    lines = [f"🕵️ <b>Competitors: {escape(analysis.business_name)}</b> ({escape(analysis.location)})"]
    if analysis.source == "fallback":
        lines.append("<i>Generic analysis (AI unavailable)</i>")
    for competitor in analysis.competitors[:3]:
        lines.append(f"\n<b>{escape(competitor.name)}</b>")
        if competitor.strengths:
            lines.append("  💪 " + escape(", ".join(competitor.strengths), limit=300))
        if competitor.weaknesses:
            lines.append("  🩹 " + escape(", ".join(competitor.weaknesses), limit=300))
    if analysis.opportunities:
        lines.append("\n<b>🎯 Opportunities:</b>")
        lines.append(_bullets(analysis.opportunities))
    return truncate("\n".join(lines))


def format_copy(business_name: str, copy: CopyResult) -> str:
    lines = [f"✍️ <b>{escape(copy.section.capitalize())} copy: {escape(business_name)}</b>"]
    if copy.source == "fallback":
        lines.append("<i>Template copy (AI unavailable)</i>")
    if copy.spanish:
        lines.append(f"\n🇨🇴 {escape(copy.spanish, limit=1000)}")
    if copy.english:
        lines.append(f"\n🇺🇸 {escape(copy.english, limit=1000)}")
    return "\n".join(lines)


def format_translation(result: TranslationResult) -> str:
    return truncate(
        f"🌐 <b>{escape(result.from_lang)} → {escape(result.to_lang)}</b>\n\n"
        f"{escape(result.translated, limit=3000)}"
    )


def format_fix(result: AnalysisResult) -> str:
    lines = [f"🔧 <b>Fix analysis: {escape(result.project)}</b>"]
    lines.append(f"\n<b>Root cause:</b>\n{escape(result.analysis, limit=1200)}")
    if result.fixes:
        lines.append(f"\n<b>Fix:</b>\n{escape(result.fixes[0], limit=1500)}")
    if result.recommendations:
        lines.append(f"\n<b>Prevention:</b>\n{escape(result.recommendations[0], limit=600)}")
    return truncate("\n".join(lines))


def format_analysis(title: str, result: AnalysisResult) -> str:
    """Review/optimize replies: the extracted lines if any, else the whole text."""
    header = f"<b>{escape(title)}: {escape(result.project)}</b>"
    if result.recommendations:
        body = "\n\n".join(escape(line, limit=500) for line in result.recommendations)
    else:
        body = escape(result.analysis, limit=3000)
    return truncate(f"{header}\n\n{body}")


# =========================================================================
# SITE PROBES
# =========================================================================

def format_speed_test(result: SpeedTestResult) -> str:
    header = f"⚡ <b>Speed test</b>\n🔗 {escape(result.url, limit=200)}"
    if not result.success:
        return f"{header}\n\n❌ Error: {escape(result.error, limit=300)}"

    m, s = result.metrics, result.scores
    lines = [header, "", f"<b>Performance:</b> {s.performance}/100"]
    if result.source == "pagespeed":
        lines.append(f"<b>Accessibility:</b> {s.accessibility}/100")
        lines.append(f"<b>Best practices:</b> {s.best_practices}/100")
        lines.append(f"<b>SEO:</b> {s.seo}/100")
    lines.append("")
    lines.append(f"LCP: {m.lcp}ms | TTFB: {m.ttfb}ms | FCP: {m.fcp}ms")
    if result.source == "pagespeed":
        lines.append(f"FID: {m.fid}ms | CLS: {m.cls}")
    if result.recommendations:
        lines.append("\n<b>Recommendations:</b>")
        lines.extend(escape(rec, limit=200) for rec in result.recommendations)
    return "\n".join(lines)


def format_seo(result: SeoResult) -> str:
    header = f"🔎 <b>SEO audit</b>\n🔗 {escape(result.url, limit=200)}"
    if not result.success:
        return f"{header}\n\n❌ Error: {escape(result.error, limit=300)}"

    c = result.checks

    def mark(ok: bool) -> str:
        return "✅" if ok else "❌"

    lines = [
        header,
        "",
        f"<b>Score:</b> {result.score}/100",
        "",
        f"{mark(c.title_present)} Title ({c.title_length} chars)",
        f"{mark(c.description_present)} Meta description ({c.description_length} chars)",
        f"{mark(c.h1_count == 1)} H1 tags: {c.h1_count}",
        f"{mark(c.images_with_alt == c.images_total)} Images with alt: {c.images_with_alt}/{c.images_total}",
        f"{mark(c.https)} HTTPS",
        f"{mark(c.mobile)} Mobile viewport",
        f"{mark(c.open_graph)} Open Graph",
        f"{mark(c.structured_data)} Structured data",
    ]
    if result.recommendations:
        lines.append("\n<b>Fix first:</b>")
        lines.extend(escape(rec, limit=200) for rec in result.recommendations)
    return "\n".join(lines)


def format_uptime(result: UptimeResult) -> str:
    icon = UPTIME_ICONS.get(result.status, UNKNOWN_STATUS_ICON)
    lines = [
        f"{icon} <b>{escape(result.status.upper())}</b>",
        f"🔗 {escape(result.url, limit=200)}",
    ]
    if result.status_code:
        lines.append(f"HTTP {result.status_code} in {result.response_time_ms}ms")
    if result.error:
        lines.append(f"Error: {escape(result.error)}")
    lines.append(f"🕐 {escape(result.checked_at)}")
    return "\n".join(lines)
