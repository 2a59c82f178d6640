"""
Telegram command handlers: AI tasks and site analytics.
"""

from typing import Optional

from ..results import AdapterResult
from ..services import acquisition, ai_operations, content
from ..services.research import research_business
from ..utils.normalize import validate_project_name, validate_url
from .context import CommandContext
from .dispatcher import CommandRegistry
from .formatting import (
    escape,
    format_analysis,
    format_competitors,
    format_copy,
    format_failure,
    format_fix,
    format_invalid,
    format_pitch,
    format_proposal,
    format_research,
    format_roi,
    format_seo,
    format_speed_test,
    format_translation,
    format_uptime,
    format_usage,
)
from .handlers import check_business_name, check_project_name, check_sector, resolve_project


def normalize_url(value: str) -> str:
    """Bare hostnames get https://."""
    if "://" not in value:
        return f"https://{value}"
    return value


async def require_llm(ctx: CommandContext) -> bool:
    """For commands that have nothing useful to say without Claude."""
    if ctx.services.llm.is_configured:
        return True
    await ctx.reply(format_failure(AdapterResult.not_configured("ANTHROPIC_API_KEY")))
    return False


async def require_url(ctx: CommandContext, usage: str) -> Optional[str]:
    raw = ctx.arg(0)
    if not raw:
        await ctx.reply(format_usage(usage, usage.split()[0] + " https://example.com"))
        return None
    url = normalize_url(raw)
    if not validate_url(url):
        await ctx.reply(format_invalid("URL", raw, "an http(s) address like https://example.com"))
        return None
    return url


def register(registry: CommandRegistry) -> None:
    """AI, sales and site analytics commands."""

    # ------------------------------------------------------------ research

    @registry.command(
        "research", usage='/research "Business Name" [sector] [location]',
        description="Research a business", family="ai",
    )
    async def handle_research(ctx: CommandContext) -> None:
        if not ctx.args:
            await ctx.reply(format_usage('/research "Business Name" [sector] [location]', '/research "Café Del Mar" restaurant Cartagena'))
            return
        business_name = ctx.args[0]
        if not await check_business_name(ctx, business_name):
            return
        sector = ctx.arg(1)
        location = " ".join(ctx.args[2:]) or None

        await ctx.typing()
        research = await research_business(ctx.services.llm, business_name, sector.lower() if sector else None, location)
        await ctx.reply(format_research(research))

    # ---------------------------------------------------- project analysis

    @registry.command(
        "fix", usage="/fix <project>", description="AI diagnosis of the latest failed deployment",
        family="ai", identifier_args=1,
    )
    async def handle_fix(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/fix <project>"))
            return
        if not await check_project_name(ctx, name):
            return
        if not await require_llm(ctx):
            return

        await ctx.typing()
        vercel = ctx.services.vercel
        project = await resolve_project(ctx, name)
        if project is None:
            return

        deployments = await vercel.list_deployments(project.id, limit=10)
        if not deployments.success:
            await ctx.reply(format_failure(deployments))
            return
        if not deployments.payload:
            await ctx.reply(f"📭 No deployments for <code>{escape(name)}</code> yet.")
            return

        failed = next((d for d in deployments.payload if d.state.upper() == "ERROR"), None)
        deployment = failed or deployments.payload[0]
        if failed is None:
            await ctx.reply(f"✅ No failed deployments found. Analyzing the latest one ({escape(deployment.state)}).")

        build_logs = await vercel.get_deployment_events(deployment.id, limit=100)
        runtime = await vercel.get_runtime_logs(project.id, deployment.id, level="error")
        error_lines = [entry.message for entry in runtime.payload] if runtime.success else []

        result = await ai_operations.analyze_and_fix(
            ctx.services.llm,
            project.name,
            error_lines,
            build_logs.payload if build_logs.success else [],
        )
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_fix(result.payload))

    @registry.command(
        "review", usage="/review <repo>", description="AI code review of recent commits",
        family="ai", identifier_args=1,
    )
    async def handle_review(ctx: CommandContext) -> None:
        repo = ctx.arg(0)
        if not repo:
            await ctx.reply(format_usage("/review <repo>"))
            return
        if not await check_project_name(ctx, repo, what="repository name"):
            return
        if not await require_llm(ctx):
            return

        await ctx.typing()
        commits = await ctx.services.github.list_commits(repo, limit=5)
        if not commits.success:
            await ctx.reply(format_failure(commits))
            return

        files = {}
        package_json = await ctx.services.github.get_file_content(repo, "package.json")
        if package_json.success:
            files["package.json"] = package_json.payload

        result = await ai_operations.review_code(
            ctx.services.llm, repo, [commit.headline for commit in commits.payload], files
        )
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_analysis("🔍 Code review", result.payload))

    @registry.command(
        "optimize", usage="/optimize <repo>", description="AI performance recommendations",
        family="ai", identifier_args=1,
    )
    async def handle_optimize(ctx: CommandContext) -> None:
        repo = ctx.arg(0)
        if not repo:
            await ctx.reply(format_usage("/optimize <repo>"))
            return
        if not await check_project_name(ctx, repo, what="repository name"):
            return
        if not await require_llm(ctx):
            return

        await ctx.typing()
        package_json = await ctx.services.github.get_file_content(repo, "package.json")
        if not package_json.success:
            await ctx.reply(format_failure(package_json))
            return

        result = await ai_operations.optimize_project(ctx.services.llm, repo, package_json.payload)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_analysis("⚡ Optimizations", result.payload))

    @registry.command(
        "chat", usage="/chat <project> <question>", description="Ask Claude about a project",
        family="ai", identifier_args=1,
    )
    async def handle_chat(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        question = ctx.command.remainder(1)
        if not name or not question:
            await ctx.reply(format_usage("/chat <project> <question>", "/chat simmer-down why is the menu page slow?"))
            return
        if not await require_llm(ctx):
            return

        await ctx.typing()
        context = None
        if validate_project_name(name):
            project = await ctx.services.vercel.get_project(name)
            if project.success:
                parts = [f"Framework: {project.payload.framework or 'unknown'}"]
                if project.payload.latest_deployments:
                    latest = project.payload.latest_deployments[0]
                    parts.append(f"Latest deployment: {latest.state} {latest.https_url}")
                context = "\n".join(parts)

        result = await ai_operations.chat_about_project(ctx.services.llm, name, question, context)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_analysis("💬 " + question[:60], result.payload))

    # ----------------------------------------------------------- acquisition

    @registry.command(
        "pitch", usage='/pitch "Business Name" <sector>', description="Sales pitch with ROI",
        family="ai",
    )
    async def handle_pitch(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage('/pitch "Business Name" <sector>', '/pitch "Hotel Boutique" hotel'))
            return
        business_name, sector = ctx.args[0], ctx.args[1].lower()
        if not await check_business_name(ctx, business_name):
            return
        if not await check_sector(ctx, sector):
            return

        await ctx.typing()
        pitch = await acquisition.generate_pitch(ctx.services.llm, business_name, sector)
        await ctx.reply(format_pitch(business_name, pitch))

    @registry.command(
        "roi", usage="/roi <sector> [tier]", description="ROI estimate for a sector", family="ai",
    )
    async def handle_roi(ctx: CommandContext) -> None:
        sector = ctx.arg(0)
        if not sector:
            await ctx.reply(format_usage("/roi <sector> [starter|professional|enterprise]", "/roi hotel enterprise"))
            return
        if not await check_sector(ctx, sector):
            return
        tier = acquisition.normalize_tier(ctx.arg(1))
        if tier is None:
            await ctx.reply(format_invalid("tier", ctx.arg(1), "one of " + ", ".join(acquisition.PRICING)))
            return
        await ctx.reply(format_roi(acquisition.calculate_roi(sector, tier)))

    @registry.command(
        "proposal", usage='/proposal "Business Name" <sector> [tier]', description="Client proposal",
        family="ai",
    )
    async def handle_proposal(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage('/proposal "Business Name" <sector> [tier]', '/proposal "Villa Sol" villa enterprise'))
            return
        business_name, sector = ctx.args[0], ctx.args[1].lower()
        if not await check_business_name(ctx, business_name):
            return
        if not await check_sector(ctx, sector):
            return
        tier = acquisition.normalize_tier(ctx.arg(2))
        if tier is None:
            await ctx.reply(format_invalid("tier", ctx.arg(2), "one of " + ", ".join(acquisition.PRICING)))
            return
        await ctx.reply(format_proposal(acquisition.generate_proposal(business_name, sector, tier)))

    @registry.command(
        "competitors", usage='/competitors "Business Name" <sector> [location]',
        description="Competitor analysis", family="ai",
    )
    async def handle_competitors(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage('/competitors "Business Name" <sector> [location]'))
            return
        business_name, sector = ctx.args[0], ctx.args[1].lower()
        if not await check_business_name(ctx, business_name):
            return
        if not await check_sector(ctx, sector):
            return
        location = " ".join(ctx.args[2:]) or None

        await ctx.typing()
        analysis = await acquisition.analyze_competitors(ctx.services.llm, business_name, sector, location)
        await ctx.reply(format_competitors(analysis))

    # ------------------------------------------------------------ analytics

    @registry.command("speedtest", usage="/speedtest <url>", description="Page speed test", family="ai")
    async def handle_speedtest(ctx: CommandContext) -> None:
        url = await require_url(ctx, "/speedtest <url>")
        if url is None:
            return
        await ctx.typing()
        await ctx.reply(format_speed_test(await ctx.services.site_probe.speed_test(url)))

    @registry.command("seo", usage="/seo <url>", description="SEO audit", family="ai")
    async def handle_seo(ctx: CommandContext) -> None:
        url = await require_url(ctx, "/seo <url>")
        if url is None:
            return
        await ctx.typing()
        await ctx.reply(format_seo(await ctx.services.site_probe.seo_audit(url)))

    @registry.command("uptime", usage="/uptime <url>", description="Uptime check", family="ai")
    async def handle_uptime(ctx: CommandContext) -> None:
        url = await require_url(ctx, "/uptime <url>")
        if url is None:
            return
        await ctx.typing()
        await ctx.reply(format_uptime(await ctx.services.site_probe.uptime(url)))

    # -------------------------------------------------------------- content

    @registry.command(
        "copy", usage='/copy "Business Name" <sector> <section>',
        description="Bilingual marketing copy", family="ai",
    )
    async def handle_copy(ctx: CommandContext) -> None:
        sections = ", ".join(content.COPY_SECTIONS)
        if len(ctx.args) < 3:
            await ctx.reply(format_usage('/copy "Business Name" <sector> <section>', '/copy "Café Del Mar" restaurant hero')
                            + f"\nSections: {sections}")
            return
        business_name, sector, section = ctx.args[0], ctx.args[1].lower(), ctx.args[2].lower()
        if not await check_business_name(ctx, business_name):
            return
        if not await check_sector(ctx, sector):
            return
        if section not in content.COPY_SECTIONS:
            await ctx.reply(format_invalid("section", section, f"one of {sections}"))
            return

        await ctx.typing()
        copy = await content.generate_copy(ctx.services.llm, business_name, sector, section)
        await ctx.reply(format_copy(business_name, copy))

    @registry.command(
        "translate", usage="/translate <es|en> <text>", description="Translate between Spanish and English",
        family="ai",
    )
    async def handle_translate(ctx: CommandContext) -> None:
        target = (ctx.arg(0) or "").lower()
        text = ctx.command.remainder(1)
        if not target or not text:
            await ctx.reply(format_usage("/translate <es|en> <text>", "/translate es Book your table today"))
            return
        if target not in content.LANGUAGES:
            await ctx.reply(format_invalid("language", target, "es or en"))
            return

        await ctx.typing()
        result = await content.translate_text(ctx.services.llm, text, target)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_translation(result.payload))
