"""
Telegram command handlers: info and deployment commands.

Each handler prints its usage when arguments are missing, validates every
identifier before it reaches an upstream URL, calls the adapters one after
another and turns failed AdapterResults into a single ❌ line. Handlers never
catch unexpected exceptions; the dispatcher does.
"""

from typing import Optional

from ..agents.schemas import BusinessResearch
from ..logging_config import get_logger
from ..results import AdapterResult
from ..services.research import SECTORS, research_business, research_to_workflow_inputs
from ..services.vercel import Project
from ..utils.normalize import (
    slugify_project_name,
    validate_branch_name,
    validate_business_name,
    validate_component_name,
    validate_deployment_id,
    validate_domain,
    validate_env_key,
    validate_project_name,
    validate_workflow_file,
)
from .context import CommandContext
from .dispatcher import CommandRegistry
from .formatting import (
    escape,
    format_build_logs,
    format_capabilities,
    format_domains,
    format_env_vars,
    format_failure,
    format_help,
    format_invalid,
    format_projects,
    format_repos,
    format_research,
    format_runtime_logs,
    format_status,
    format_usage,
    format_workflow_run,
)
from .parsing import unquote

logger = get_logger("handlers")

PROJECT_RULE = "lowercase letters, digits and hyphens, starting with a letter or digit (max 100)"
COMPONENT_RULE = "PascalCase, starting with an uppercase letter (max 50)"
BUSINESS_RULE = "letters, digits, spaces and ' \" , . - (max 100)"
ENV_KEY_RULE = "uppercase letters, digits and underscores"
BRANCH_RULE = "letters, digits, '.', '_', '/' and '-'"
LOG_LEVELS = ("error", "warning", "info")
IN_FLIGHT_STATES = ("BUILDING", "QUEUED", "INITIALIZING")


# =========================================================================
# SHARED CHECKS
# =========================================================================

async def check_project_name(ctx: CommandContext, name: str, what: str = "project name") -> bool:
    if validate_project_name(name):
        return True
    await ctx.reply(format_invalid(what, name, PROJECT_RULE))
    return False


async def check_business_name(ctx: CommandContext, name: str) -> bool:
    if validate_business_name(name):
        return True
    await ctx.reply(format_invalid("business name", name, BUSINESS_RULE))
    return False


async def check_sector(ctx: CommandContext, sector: str) -> bool:
    if sector.lower() in SECTORS:
        return True
    await ctx.reply(format_invalid("sector", sector, "one of " + ", ".join(SECTORS)))
    return False


async def resolve_project(ctx: CommandContext, name: str) -> Optional[Project]:
    """Project by name, or None after replying with why it couldn't be loaded."""
    result = await ctx.services.vercel.get_project(name)
    if result.success:
        return result.payload
    if result.is_not_found:
        await ctx.reply(
            f"❌ Project <code>{escape(name)}</code> not found. Use /sites to see available projects."
        )
    else:
        await ctx.reply(format_failure(result))
    return None


async def require_automation_repo(ctx: CommandContext) -> Optional[str]:
    repo = ctx.settings.github_automation_repo
    if not repo:
        await ctx.reply(format_failure(AdapterResult.not_configured("GITHUB_AUTOMATION_REPO")))
        return None
    return repo


# =========================================================================
# REGISTRATION
# =========================================================================

def register(registry: CommandRegistry) -> None:
    """Info and deployment commands."""

    # ---------------------------------------------------------------- info

    @registry.command("start", usage="/start", description="Welcome and command overview")
    async def handle_start(ctx: CommandContext) -> None:
        await ctx.reply(format_help(registry.commands()))

    @registry.command("help", usage="/help", description="Show this help")
    async def handle_help(ctx: CommandContext) -> None:
        await ctx.reply(format_help(registry.commands()))

    @registry.command("ping", usage="/ping", description="Check the bot is alive")
    async def handle_ping(ctx: CommandContext) -> None:
        await ctx.reply(format_capabilities(ctx.settings.capabilities()))

    @registry.command(
        "sites", usage="/sites", description="List Vercel projects", aliases=("projects",)
    )
    async def handle_sites(ctx: CommandContext) -> None:
        await ctx.typing()
        result = await ctx.services.vercel.list_projects()
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(format_projects(result.payload))

    @registry.command(
        "status", usage="/status <project>", description="Latest deployments", identifier_args=1
    )
    async def handle_status(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/status <project>", "/status simmer-down"))
            return
        if not await check_project_name(ctx, name):
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return

        deployments = await ctx.services.vercel.list_deployments(project.id, limit=3)
        if not deployments.success:
            await ctx.reply(format_failure(deployments))
            return
        await ctx.reply(format_status(project, deployments.payload))

    @registry.command(
        "logs", usage="/logs <project>", description="Build logs of the latest deployment",
        identifier_args=1,
    )
    async def handle_logs(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/logs <project>"))
            return
        if not await check_project_name(ctx, name):
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return

        deployments = await ctx.services.vercel.list_deployments(project.id, limit=1)
        if not deployments.success:
            await ctx.reply(format_failure(deployments))
            return
        if not deployments.payload:
            await ctx.reply(f"📭 No deployments for <code>{escape(name)}</code> yet.")
            return

        deployment = deployments.payload[0]
        events = await ctx.services.vercel.get_deployment_events(deployment.id)
        if not events.success:
            await ctx.reply(format_failure(events))
            return
        await ctx.reply(format_build_logs(project.name, deployment, events.payload))

    @registry.command(
        "errors", usage="/errors <project> [level]",
        description="Runtime logs of the production deployment", identifier_args=1,
    )
    async def handle_errors(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/errors <project> [error|warning|info]"))
            return
        if not await check_project_name(ctx, name):
            return
        level = ctx.arg(1)
        if level and level.lower() not in LOG_LEVELS:
            await ctx.reply(format_invalid("log level", level, "one of " + ", ".join(LOG_LEVELS)))
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return

        deployments = await ctx.services.vercel.list_deployments(project.id, limit=1, target="production")
        if not deployments.success:
            await ctx.reply(format_failure(deployments))
            return
        if not deployments.payload:
            await ctx.reply(f"📭 No production deployment for <code>{escape(name)}</code>.")
            return

        logs = await ctx.services.vercel.get_runtime_logs(
            project.id, deployments.payload[0].id, level=level.lower() if level else None
        )
        if not logs.success:
            await ctx.reply(format_failure(logs))
            return
        await ctx.reply(format_runtime_logs(project.name, logs.payload, level))

    @registry.command(
        "domains", usage="/domains <project>", description="Custom domains", identifier_args=1
    )
    async def handle_domains(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/domains <project>"))
            return
        if not await check_project_name(ctx, name):
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return
        domains = await ctx.services.vercel.list_domains(project.id)
        if not domains.success:
            await ctx.reply(format_failure(domains))
            return
        await ctx.reply(format_domains(project.name, domains.payload))

    @registry.command(
        "env", usage="/env <project>", description="Environment variable names", identifier_args=1
    )
    async def handle_env(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/env <project>"))
            return
        if not await check_project_name(ctx, name):
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return
        env_vars = await ctx.services.vercel.list_env_vars(project.id)
        if not env_vars.success:
            await ctx.reply(format_failure(env_vars))
            return
        await ctx.reply(format_env_vars(project.name, env_vars.payload))

    @registry.command(
        "preview", usage="/preview <project> [branch]", description="Preview URL for a branch",
        identifier_args=1,
    )
    async def handle_preview(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/preview <project> [branch]", "/preview simmer-down feature/menu"))
            return
        branch = ctx.arg(1, "main")
        if not await check_project_name(ctx, name):
            return
        if not validate_branch_name(branch):
            await ctx.reply(format_invalid("branch", branch, BRANCH_RULE))
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return
        preview = await ctx.services.vercel.get_preview_url(project.id, branch)
        if not preview.success:
            await ctx.reply(format_failure(preview))
            return
        await ctx.reply(
            f"🔍 <b>Preview: {escape(project.name)}</b>\n🌿 {escape(branch)}\n🔗 {escape(preview.payload, limit=200)}"
        )

    @registry.command("repos", usage="/repos [filter]", description="GitHub repositories")
    async def handle_repos(ctx: CommandContext) -> None:
        query = ctx.command.text or None
        await ctx.typing()
        repos = await ctx.services.github.list_repos(query=query)
        if not repos.success:
            await ctx.reply(format_failure(repos))
            return
        await ctx.reply(format_repos(repos.payload, query))

    @registry.command(
        "buildstatus", usage="/buildstatus [workflow]", description="Latest automation workflow run"
    )
    async def handle_buildstatus(ctx: CommandContext) -> None:
        repo = await require_automation_repo(ctx)
        if repo is None:
            return
        workflow = ctx.arg(0, ctx.settings.github_build_workflow)
        if not validate_workflow_file(workflow):
            await ctx.reply(format_invalid("workflow", workflow, "a workflow file name like build.yml"))
            return

        await ctx.typing()
        run = await ctx.services.github.get_latest_workflow_run(repo, workflow)
        if not run.success:
            await ctx.reply(format_failure(run))
            return
        await ctx.reply(format_workflow_run(workflow, run.payload))

    # ------------------------------------------------------------ mutating

    @registry.command(
        "deploy", usage="/deploy <project> [branch]", description="Trigger a production deployment",
        family="mutating", identifier_args=1,
    )
    async def handle_deploy(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/deploy <project> [branch]", "/deploy simmer-down"))
            return
        branch = ctx.arg(1)
        if not await check_project_name(ctx, name):
            return
        if branch and not validate_branch_name(branch):
            await ctx.reply(format_invalid("branch", branch, BRANCH_RULE))
            return

        await ctx.typing()
        target = f" from <code>{escape(branch)}</code>" if branch else ""
        await ctx.reply(f"🚀 Triggering deployment for <code>{escape(name)}</code>{target}...")

        result = await ctx.services.vercel.trigger_deployment(name, branch=branch)
        if not result.success:
            await ctx.reply(format_failure(result))
            return

        deployment = result.payload
        await ctx.reply(
            f"✅ <b>Deployment triggered!</b>\n\n"
            f"🆔 <code>{escape(deployment.id[:16])}</code>\n"
            f"🔗 {escape(deployment.url, limit=200)}\n\n"
            f"Use /status {escape(name)} to check progress."
        )

    @registry.command(
        "rollback", usage="/rollback <project> [deployment-id]",
        description="Roll production back to the previous ready deployment",
        family="mutating", identifier_args=1,
    )
    async def handle_rollback(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/rollback <project> [deployment-id]"))
            return
        deployment_id = ctx.arg(1)
        if not await check_project_name(ctx, name):
            return
        if deployment_id and not validate_deployment_id(deployment_id):
            await ctx.reply(format_invalid("deployment id", deployment_id, "letters, digits and underscores"))
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return

        if not deployment_id:
            ready = await ctx.services.vercel.list_deployments(
                project.id, limit=10, target="production", state="READY"
            )
            if not ready.success:
                await ctx.reply(format_failure(ready))
                return
            # [0] is what production serves now
            if len(ready.payload) < 2:
                await ctx.reply(f"❌ No previous ready production deployment for <code>{escape(name)}</code>.")
                return
            deployment_id = ready.payload[1].id

        await ctx.reply(f"⏪ Rolling back <code>{escape(name)}</code> to <code>{escape(deployment_id)}</code>...")
        result = await ctx.services.vercel.rollback(project.id, deployment_id)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(f"✅ <b>Rolled back</b> <code>{escape(name)}</code>.")

    @registry.command(
        "cancel", usage="/cancel <project>", description="Cancel an in-progress deployment",
        family="mutating", identifier_args=1,
    )
    async def handle_cancel(ctx: CommandContext) -> None:
        name = ctx.arg(0)
        if not name:
            await ctx.reply(format_usage("/cancel <project>"))
            return
        if not await check_project_name(ctx, name):
            return

        await ctx.typing()
        project = await resolve_project(ctx, name)
        if project is None:
            return

        deployments = await ctx.services.vercel.list_deployments(project.id, limit=10)
        if not deployments.success:
            await ctx.reply(format_failure(deployments))
            return
        in_flight = next(
            (d for d in deployments.payload if d.state.upper() in IN_FLIGHT_STATES), None
        )
        if in_flight is None:
            await ctx.reply(f"🤷 Nothing to cancel for <code>{escape(name)}</code>.")
            return

        result = await ctx.services.vercel.cancel_deployment(in_flight.id)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(f"🚫 Canceled deployment <code>{escape(in_flight.id[:16])}</code> of <code>{escape(name)}</code>.")

    @registry.command(
        "create", usage='/create "Business Name" <sector>',
        description="Research a business and start a site build", family="mutating",
    )
    async def handle_create(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage('/create "Business Name" <sector>', '/create "Café Del Mar" restaurant'))
            return
        business_name, sector = ctx.args[0], ctx.args[1].lower()
        if not await check_business_name(ctx, business_name):
            return
        if not await check_sector(ctx, sector):
            return
        project_name = slugify_project_name(business_name)
        if not await check_project_name(ctx, project_name, what="derived project name"):
            return
        repo = await require_automation_repo(ctx)
        if repo is None:
            return

        await ctx.typing()
        await ctx.reply(f"🔍 Researching <b>{escape(business_name)}</b>...")
        research: BusinessResearch = await research_business(ctx.services.llm, business_name, sector)
        await ctx.reply(format_research(research))

        inputs = research_to_workflow_inputs(research, project_name)
        result = await ctx.services.github.trigger_workflow(repo, ctx.settings.github_build_workflow, inputs)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(
            f"🏗️ <b>Build started</b> for <b>{escape(business_name)}</b>\n"
            f"📦 Project: <code>{escape(project_name)}</code>\n\n"
            f"Track it with /buildstatus"
        )

    @registry.command(
        "component", usage="/component <project> <ComponentName>",
        description="Add a component to a project", family="mutating", identifier_args=1,
    )
    async def handle_component(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage("/component <project> <ComponentName>", "/component simmer-down BookingForm"))
            return
        project_name, component = ctx.args[0], ctx.args[1]
        if not await check_project_name(ctx, project_name):
            return
        if not validate_component_name(component):
            await ctx.reply(format_invalid("component name", component, COMPONENT_RULE))
            return
        repo = await require_automation_repo(ctx)
        if repo is None:
            return

        await ctx.typing()
        result = await ctx.services.github.trigger_workflow(
            repo,
            ctx.settings.github_component_workflow,
            {"project_name": project_name, "component_name": component},
        )
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        await ctx.reply(
            f"🧩 Adding <code>{escape(component)}</code> to <code>{escape(project_name)}</code>.\n"
            f"Track it with /buildstatus {escape(ctx.settings.github_component_workflow)}"
        )

    @registry.command(
        "clone", usage="/clone <source> <new-name>", description="Create a new repo from an existing one",
        family="mutating", identifier_args=2,
    )
    async def handle_clone(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage("/clone <source> <new-name>", "/clone simmer-down simmer-up"))
            return
        source, new_name = ctx.args[0], ctx.args[1]
        if not await check_project_name(ctx, source, what="source name"):
            return
        if not await check_project_name(ctx, new_name, what="new name"):
            return

        await ctx.typing()
        github = ctx.services.github
        exists = await github.repo_exists(source)
        if not exists.success:
            await ctx.reply(format_failure(exists))
            return
        if not exists.payload:
            await ctx.reply(f"❌ Source repository <code>{escape(source)}</code> not found.")
            return

        taken = await github.repo_exists(new_name)
        if not taken.success:
            await ctx.reply(format_failure(taken))
            return
        if taken.payload:
            await ctx.reply(f"❌ Repository <code>{escape(new_name)}</code> already exists.")
            return

        created = await github.create_repo(new_name, description=f"Cloned from {source}")
        if not created.success:
            await ctx.reply(format_failure(created))
            return
        await ctx.reply(
            f"✅ Created <code>{escape(new_name)}</code> from <code>{escape(source)}</code>\n"
            f"🔗 {escape(created.payload.html_url, limit=200)}\n\n"
            f"Push the source contents to the new repository to finish the clone."
        )

    @registry.command(
        "setenv", usage="/setenv <project> <KEY> <value>",
        description="Create or update an environment variable", family="mutating", identifier_args=1,
    )
    async def handle_setenv(ctx: CommandContext) -> None:
        value = unquote(ctx.command.remainder(2))
        if len(ctx.args) < 3 or not value:
            await ctx.reply(format_usage("/setenv <project> <KEY> <value>", "/setenv simmer-down API_URL https://api.example.com"))
            return
        project_name, key = ctx.args[0], ctx.args[1]
        if not await check_project_name(ctx, project_name):
            return
        if not validate_env_key(key):
            await ctx.reply(format_invalid("variable name", key, ENV_KEY_RULE))
            return

        await ctx.typing()
        project = await resolve_project(ctx, project_name)
        if project is None:
            return
        result = await ctx.services.vercel.set_env_var(project.id, key, value)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        # Never echo the value back into the chat history
        await ctx.reply(
            f"✅ <code>{escape(key)}</code> {result.payload} on <code>{escape(project.name)}</code> "
            f"(production, preview).\nRedeploy with /deploy {escape(project.name)} to apply."
        )

    @registry.command(
        "adddomain", usage="/adddomain <project> <domain>", description="Add a custom domain",
        family="mutating", identifier_args=1,
    )
    async def handle_adddomain(ctx: CommandContext) -> None:
        if len(ctx.args) < 2:
            await ctx.reply(format_usage("/adddomain <project> <domain>", "/adddomain simmer-down simmerdown.co"))
            return
        project_name, domain = ctx.args[0], ctx.args[1].lower()
        if not await check_project_name(ctx, project_name):
            return
        if not validate_domain(domain):
            await ctx.reply(format_invalid("domain", domain, "a hostname like example.com"))
            return

        await ctx.typing()
        project = await resolve_project(ctx, project_name)
        if project is None:
            return
        result = await ctx.services.vercel.add_domain(project.id, domain)
        if not result.success:
            await ctx.reply(format_failure(result))
            return
        state = "✅ verified" if result.payload.verified else "⏳ pending DNS verification"
        await ctx.reply(f"🌐 Added <code>{escape(domain)}</code> to <code>{escape(project.name)}</code>: {state}")

    logger.debug("Registered info and deployment commands")
