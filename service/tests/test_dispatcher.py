"""
Tests for the command registry and Dispatcher.handle_command.

Adapters are AsyncMocks; the Telegram transport records outgoing messages.
"""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from command_center.errors import ConfigurationError
from command_center.results import AdapterResult
from command_center.services.github import Commit, CreatedRepository, Repository, WorkflowRun
from command_center.services.site_probe import SeoResult, UptimeResult
from command_center.services.vercel import (
    Deployment,
    Domain,
    EnvVar,
    Project,
    RuntimeLogEntry,
    TriggeredDeployment,
)
from command_center.telegram_bot.auth import UNAUTHORIZED_MESSAGE
from command_center.telegram_bot.bot import build_registry
from command_center.telegram_bot.dispatcher import Command, CommandRegistry, Dispatcher

from conftest import AUTHORIZED_ID, CHAT_ID, STRANGER_ID, ScriptedLLM, make_settings

PROJECT = Project(id="prj_1", name="simmer-down")


def deployment(uid: str, state: str = "READY", **extra) -> Deployment:
    return Deployment.model_validate({"uid": uid, "url": f"{uid}.vercel.app", "state": state, **extra})


async def run(dispatcher, text, caller_id=AUTHORIZED_ID):
    await dispatcher.handle_command(CHAT_ID, caller_id, text)


def with_llm(services, settings, reply):
    llm = ScriptedLLM(reply)
    return Dispatcher(build_registry(), replace(services, llm=llm), settings), llm


class TestCommandRegistry:

    def test_full_command_surface_registered(self):
        registry = build_registry()
        expected = {
            "start", "help", "ping", "sites", "status", "logs", "errors", "domains", "env",
            "preview", "repos", "buildstatus", "deploy", "rollback", "cancel", "create",
            "component", "clone", "setenv", "adddomain", "research", "fix", "review",
            "optimize", "chat", "pitch", "roi", "proposal", "competitors", "speedtest",
            "seo", "uptime", "copy", "translate",
        }
        assert set(registry.names()) == expected

    def test_alias_resolves(self):
        registry = build_registry()
        assert registry.get("projects") is registry.get("sites")

    def test_every_command_has_usage_and_family(self):
        for command in build_registry().commands():
            assert command.usage.startswith("/")
            assert command.family in ("info", "mutating", "ai")

    def test_duplicate_name_rejected(self):
        registry = CommandRegistry()

        async def handler(ctx):
            pass

        registry.add(Command(name="x", handler=handler, usage="/x", description="x"))
        with pytest.raises(ValueError):
            registry.add(Command(name="x", handler=handler, usage="/x", description="x"))


class TestAuthorization:

    @pytest.mark.asyncio
    async def test_unauthorized_caller_gets_one_reply_and_no_adapter_call(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/deploy simmer-down", caller_id=STRANGER_ID)

        assert telegram.texts == [UNAUTHORIZED_MESSAGE]
        vercel.trigger_deployment.assert_not_called()
        vercel.get_project.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_allow_list_denies_everyone(self, services, telegram, vercel):
        dispatcher = Dispatcher(build_registry(), services, make_settings(authorized_telegram_ids=""))

        await run(dispatcher, "/sites")

        assert telegram.texts == [UNAUTHORIZED_MESSAGE]
        vercel.list_projects.assert_not_called()

    @pytest.mark.asyncio
    async def test_unauthorized_even_for_non_commands(self, dispatcher, telegram):
        await run(dispatcher, "hello", caller_id=STRANGER_ID)
        assert telegram.texts == [UNAUTHORIZED_MESSAGE]


class TestRouting:

    @pytest.mark.asyncio
    async def test_non_command_text(self, dispatcher, telegram):
        await run(dispatcher, "what's up?")
        assert len(telegram.texts) == 1
        assert "/help" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_unknown_command_names_help(self, dispatcher, telegram):
        await run(dispatcher, "/frobnicate now")
        assert len(telegram.texts) == 1
        assert "Unknown command" in telegram.texts[0]
        assert "/help" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_unknown_command_is_escaped(self, dispatcher, telegram):
        await run(dispatcher, "/<b>x</b>")
        assert "<b>x</b>" not in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_help_lists_commands(self, dispatcher, telegram):
        await run(dispatcher, "/help")
        assert "/deploy" in telegram.texts[0]
        assert "/translate" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_ping_reports_capabilities_without_values(self, dispatcher, telegram):
        await run(dispatcher, "/ping")
        assert "vercel" in telegram.texts[0]
        assert "test-vercel-token" not in telegram.texts[0]


class TestStatus:

    @pytest.mark.asyncio
    async def test_missing_argument_prints_usage(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/status")
        assert telegram.texts[0].startswith("Usage:")
        vercel.get_project.assert_not_called()

    @pytest.mark.asyncio
    async def test_project_not_found_suggests_sites(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.not_found("Project 'nope' not found")

        await run(dispatcher, "/status nope")

        assert len(telegram.texts) == 1
        assert "not found" in telegram.texts[0]
        assert "/sites" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_deployment_url_is_normalized(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([
            deployment("dpl_a", "READY"),
            deployment("dpl_b", "ERROR"),
        ])

        await run(dispatcher, "/status https://simmer-down-ab12cd34-team.vercel.app")

        vercel.get_project.assert_awaited_once_with("simmer-down")
        vercel.list_deployments.assert_awaited_once_with("prj_1", limit=3)
        assert "✅" in telegram.texts[-1]
        assert "❌" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_not_configured(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.not_configured("VERCEL_API_TOKEN")
        await run(dispatcher, "/status simmer-down")
        assert telegram.texts == ["⚙️ Not configured: VERCEL_API_TOKEN not configured"]


class TestDeploy:

    @pytest.mark.asyncio
    async def test_two_replies_on_success(self, dispatcher, telegram, vercel):
        vercel.trigger_deployment.return_value = AdapterResult.ok(
            TriggeredDeployment(id="dpl_1234567890abcdef", url="https://simmer-down-x1.vercel.app")
        )

        await run(dispatcher, "/deploy simmer-down")

        assert len(telegram.texts) == 2
        assert "Triggering deployment" in telegram.texts[0]
        assert "Deployment triggered" in telegram.texts[1]
        assert "https://simmer-down-x1.vercel.app" in telegram.texts[1]
        vercel.trigger_deployment.assert_awaited_once_with("simmer-down", branch=None)

    @pytest.mark.asyncio
    async def test_branch_passed_through(self, dispatcher, vercel):
        vercel.trigger_deployment.return_value = AdapterResult.ok(TriggeredDeployment(id="d", url="u"))
        await run(dispatcher, "/deploy simmer-down feature/menu")
        vercel.trigger_deployment.assert_awaited_once_with("simmer-down", branch="feature/menu")

    @pytest.mark.asyncio
    async def test_invalid_name_never_reaches_adapter(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/deploy Bad_Name")

        vercel.trigger_deployment.assert_not_called()
        assert len(telegram.texts) == 1
        assert "Invalid project name" in telegram.texts[0]
        assert "Bad_Name" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_uppercase_name_rejected(self, dispatcher, vercel):
        await run(dispatcher, "/deploy Simmer-Down")
        vercel.trigger_deployment.assert_not_called()

    @pytest.mark.asyncio
    async def test_upstream_failure(self, dispatcher, telegram, vercel):
        vercel.trigger_deployment.return_value = AdapterResult.fail("Vercel API error: 500 - boom")
        await run(dispatcher, "/deploy simmer-down")
        assert telegram.texts[-1] == "❌ Error: Vercel API error: 500 - boom"


class TestFailureContainment:

    @pytest.mark.asyncio
    async def test_handler_exception_gives_exactly_one_failure_reply(self, dispatcher, telegram, vercel):
        vercel.list_projects.side_effect = RuntimeError("kaboom")

        await run(dispatcher, "/sites")

        failures = [text for text in telegram.texts if "Command failed" in text]
        assert failures == ["❌ Command failed: kaboom"]

    @pytest.mark.asyncio
    async def test_missing_bot_token_does_not_raise(self, services, settings):
        services.telegram.send_message = AsyncMock(side_effect=ConfigurationError("Telegram", "TELEGRAM_BOT_TOKEN"))
        dispatcher = Dispatcher(build_registry(), services, settings)

        await run(dispatcher, "/help")
        await run(dispatcher, "/help", caller_id=STRANGER_ID)


class TestOtherCommands:

    @pytest.mark.asyncio
    async def test_rollback_picks_previous_ready_deployment(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([
            deployment("dpl_current"), deployment("dpl_previous"),
        ])
        vercel.rollback.return_value = AdapterResult.ok({})

        await run(dispatcher, "/rollback simmer-down")

        vercel.rollback.assert_awaited_once_with("prj_1", "dpl_previous")
        assert "Rolled back" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_rollback_without_history(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([deployment("dpl_current")])

        await run(dispatcher, "/rollback simmer-down")

        vercel.rollback.assert_not_called()
        assert "No previous" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_cancel_targets_in_flight_deployment(self, dispatcher, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([
            deployment("dpl_building", "BUILDING"), deployment("dpl_old"),
        ])
        vercel.cancel_deployment.return_value = AdapterResult.ok(deployment("dpl_building", "CANCELED"))

        await run(dispatcher, "/cancel simmer-down")

        vercel.cancel_deployment.assert_awaited_once_with("dpl_building")

    @pytest.mark.asyncio
    async def test_env_never_shows_values(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_env_vars.return_value = AdapterResult.ok([
            EnvVar.model_validate({"id": "e1", "key": "API_URL", "target": ["production"], "value": "s3cr3t"}),
        ])

        await run(dispatcher, "/env simmer-down")

        assert "API_URL" in telegram.texts[-1]
        assert "s3cr3t" not in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_setenv_does_not_echo_value(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.set_env_var.return_value = AdapterResult.ok("created")

        await run(dispatcher, "/setenv simmer-down API_KEY s3cr3t value")

        vercel.set_env_var.assert_awaited_once_with("prj_1", "API_KEY", "s3cr3t value")
        assert all("s3cr3t" not in text for text in telegram.texts)

    @pytest.mark.asyncio
    async def test_setenv_rejects_lowercase_key(self, dispatcher, vercel):
        await run(dispatcher, "/setenv simmer-down api_key value")
        vercel.set_env_var.assert_not_called()

    @pytest.mark.asyncio
    async def test_adddomain(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.add_domain.return_value = AdapterResult.ok(Domain(name="simmerdown.co", verified=False))

        await run(dispatcher, "/adddomain simmer-down SimmerDown.co")

        vercel.add_domain.assert_awaited_once_with("prj_1", "simmerdown.co")
        assert "pending" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_clone_existing_target_rejected(self, dispatcher, telegram, github):
        github.repo_exists.side_effect = [AdapterResult.ok(True), AdapterResult.ok(True)]

        await run(dispatcher, "/clone https://github.com/acme/simmer-down simmer-up")

        github.create_repo.assert_not_called()
        assert "already exists" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_clone_creates_repo(self, dispatcher, telegram, github):
        github.repo_exists.side_effect = [AdapterResult.ok(True), AdapterResult.ok(False)]
        github.create_repo.return_value = AdapterResult.ok(
            CreatedRepository(name="simmer-up", html_url="https://github.com/acme/simmer-up")
        )

        await run(dispatcher, "/clone simmer-down simmer-up")

        github.create_repo.assert_awaited_once_with("simmer-up", description="Cloned from simmer-down")
        assert "https://github.com/acme/simmer-up" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_component_triggers_workflow(self, dispatcher, github):
        github.trigger_workflow.return_value = AdapterResult.ok({})

        await run(dispatcher, "/component simmer-down BookingForm")

        github.trigger_workflow.assert_awaited_once_with(
            "automation", "add-component.yml",
            {"project_name": "simmer-down", "component_name": "BookingForm"},
        )

    @pytest.mark.asyncio
    async def test_component_without_automation_repo(self, services, telegram, github):
        dispatcher = Dispatcher(build_registry(), services, make_settings(github_automation_repo=""))

        await run(dispatcher, "/component simmer-down BookingForm")

        github.trigger_workflow.assert_not_called()
        assert "GITHUB_AUTOMATION_REPO" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_create_uses_fallback_research_and_triggers_build(self, dispatcher, telegram, github):
        github.trigger_workflow.return_value = AdapterResult.ok({})

        await run(dispatcher, '/create "Café Del Mar" restaurant')

        repo, workflow, inputs = github.trigger_workflow.await_args.args
        assert (repo, workflow) == ("automation", "genesis-build.yml")
        assert inputs["project_name"] == "cafe-del-mar"
        assert inputs["sector"] == "restaurant"
        assert len(inputs) <= 10
        assert "Build started" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_sector(self, dispatcher, telegram, github):
        await run(dispatcher, '/create "Café Del Mar" spaceport')
        github.trigger_workflow.assert_not_called()
        assert "Invalid sector" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_buildstatus_no_runs(self, dispatcher, telegram, github):
        github.get_latest_workflow_run.return_value = AdapterResult.ok(None)
        await run(dispatcher, "/buildstatus")
        github.get_latest_workflow_run.assert_awaited_once_with("automation", "genesis-build.yml")
        assert "No runs yet" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_buildstatus_run(self, dispatcher, telegram, github):
        github.get_latest_workflow_run.return_value = AdapterResult.ok(
            WorkflowRun(id=1, status="completed", conclusion="success", html_url="https://github.com/r/1")
        )
        await run(dispatcher, "/buildstatus")
        assert "✅ success" in telegram.texts[-1]


class TestAiCommands:

    @pytest.mark.asyncio
    async def test_fix_without_llm_key_makes_no_upstream_calls(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/fix simmer-down")

        vercel.get_project.assert_not_called()
        assert telegram.texts == ["⚙️ Not configured: ANTHROPIC_API_KEY not configured"]

    @pytest.mark.asyncio
    async def test_roi_needs_no_llm(self, dispatcher, telegram):
        await run(dispatcher, "/roi hotel")
        assert "HOTEL" in telegram.texts[0]
        assert "$45,000" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_roi_invalid_tier(self, dispatcher, telegram):
        await run(dispatcher, "/roi hotel platinum")
        assert "Invalid tier" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_translate_uses_llm(self, services, settings, telegram):
        services = replace(services, llm=ScriptedLLM("Reserve hoy"))
        dispatcher = Dispatcher(build_registry(), services, settings)

        await run(dispatcher, "/translate es Book today")

        assert "Reserve hoy" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_speedtest_rejects_bad_url(self, dispatcher, telegram, site_probe):
        await run(dispatcher, "/speedtest ftp://example.com")
        site_probe.speed_test.assert_not_called()
        assert "Invalid URL" in telegram.texts[0]


class TestInfoCommands:

    @pytest.mark.asyncio
    async def test_logs_usage(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/logs")
        assert telegram.texts == ["Usage: <code>/logs &lt;project&gt;</code>"]
        vercel.get_project.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_show_build_output_of_latest_deployment(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([deployment("dpl_1", "ERROR")])
        vercel.get_deployment_events.return_value = AdapterResult.ok(["Installing", "Build failed: <Menu>"])

        await run(dispatcher, "/logs simmer-down")

        vercel.list_deployments.assert_awaited_once_with("prj_1", limit=1)
        vercel.get_deployment_events.assert_awaited_once_with("dpl_1")
        assert "<pre>" in telegram.texts[-1]
        assert "Build failed: &lt;Menu&gt;" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_errors_usage(self, dispatcher, telegram):
        await run(dispatcher, "/errors")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_errors_level_filter(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([deployment("dpl_prod")])
        vercel.get_runtime_logs.return_value = AdapterResult.ok([
            RuntimeLogEntry(level="error", message="Menu API down", request_path="/api/menu"),
        ])

        await run(dispatcher, "/errors simmer-down ERROR")

        vercel.list_deployments.assert_awaited_once_with("prj_1", limit=1, target="production")
        vercel.get_runtime_logs.assert_awaited_once_with("prj_1", "dpl_prod", level="error")
        assert "[ERROR] /api/menu Menu API down" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_errors_rejects_unknown_level(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/errors simmer-down debug")
        vercel.get_project.assert_not_called()
        assert "Invalid log level" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_domains_usage(self, dispatcher, telegram):
        await run(dispatcher, "/domains")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_domains(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_domains.return_value = AdapterResult.ok([
            Domain(name="simmerdown.co", verified=True),
            Domain(name="www.simmerdown.co", verified=False),
        ])

        await run(dispatcher, "/domains https://simmer-down.vercel.app")

        vercel.list_domains.assert_awaited_once_with("prj_1")
        assert "✅ simmerdown.co" in telegram.texts[-1]
        assert "⏳ www.simmerdown.co" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_preview_usage(self, dispatcher, telegram):
        await run(dispatcher, "/preview")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_preview_defaults_to_main(self, dispatcher, telegram, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.get_preview_url.return_value = AdapterResult.ok("https://simmer-down-git-main.vercel.app")

        await run(dispatcher, "/preview simmer-down")

        vercel.get_preview_url.assert_awaited_once_with("prj_1", "main")
        assert "https://simmer-down-git-main.vercel.app" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_preview_rejects_bad_branch(self, dispatcher, telegram, vercel):
        await run(dispatcher, "/preview simmer-down a..b")
        vercel.get_project.assert_not_called()
        assert "Invalid branch" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_repos_without_filter(self, dispatcher, telegram, github):
        github.list_repos.return_value = AdapterResult.ok([Repository(name="simmer-down", private=True)])

        await run(dispatcher, "/repos")

        github.list_repos.assert_awaited_once_with(query=None)
        assert "🔒 <code>simmer-down</code>" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_repos_substring_filter(self, dispatcher, telegram, github):
        github.list_repos.return_value = AdapterResult.ok([])

        await run(dispatcher, "/repos restaurant")

        github.list_repos.assert_awaited_once_with(query="restaurant")
        assert telegram.texts[-1] == "📭 No repositories matching <code>restaurant</code>."

    @pytest.mark.asyncio
    async def test_repos_failure(self, dispatcher, telegram, github):
        github.list_repos.return_value = AdapterResult.not_configured("GITHUB_TOKEN")
        await run(dispatcher, "/repos")
        assert telegram.texts == ["⚙️ Not configured: GITHUB_TOKEN not configured"]


class TestProjectAnalysisCommands:

    @pytest.mark.asyncio
    async def test_fix_usage(self, dispatcher, telegram):
        await run(dispatcher, "/fix")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_fix_analyzes_latest_failed_deployment(self, services, settings, telegram, vercel):
        dispatcher, llm = with_llm(
            services, settings,
            "ROOT CAUSE: API_URL is not set\nFIX: Add API_URL to production\nPREVENTION: Check env in CI",
        )
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([
            deployment("dpl_ok"), deployment("dpl_bad", "ERROR"),
        ])
        vercel.get_deployment_events.return_value = AdapterResult.ok(["TypeError: API_URL undefined"])
        vercel.get_runtime_logs.return_value = AdapterResult.ok([])

        await run(dispatcher, "/fix simmer-down")

        vercel.get_deployment_events.assert_awaited_once_with("dpl_bad", limit=100)
        assert "TypeError: API_URL undefined" in llm.prompts[0]
        assert len(telegram.texts) == 1
        assert "API_URL is not set" in telegram.texts[0]
        assert "Add API_URL to production" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_fix_without_failures_analyzes_latest(self, services, settings, telegram, vercel):
        dispatcher, _ = with_llm(services, settings, "All good.")
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.list_deployments.return_value = AdapterResult.ok([deployment("dpl_ok")])
        vercel.get_deployment_events.return_value = AdapterResult.ok([])
        vercel.get_runtime_logs.return_value = AdapterResult.ok([])

        await run(dispatcher, "/fix simmer-down")

        vercel.get_deployment_events.assert_awaited_once_with("dpl_ok", limit=100)
        assert "No failed deployments" in telegram.texts[0]
        assert "All good." in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_review_usage(self, dispatcher, telegram):
        await run(dispatcher, "/review")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_review_extracts_marked_lines(self, services, settings, telegram, github):
        dispatcher, _ = with_llm(services, settings, "Overall fine.\n🔴 Token committed\n🟢 Clean components")
        github.list_commits.return_value = AdapterResult.ok([Commit(sha="abcdef1234", message="Add menu")])
        github.get_file_content.return_value = AdapterResult.not_found("File 'package.json' not found")

        await run(dispatcher, "/review https://github.com/acme/simmer-down")

        github.list_commits.assert_awaited_once_with("simmer-down", limit=5)
        assert "🔴 Token committed" in telegram.texts[-1]
        assert "Overall fine." not in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_review_without_llm(self, dispatcher, telegram, github):
        await run(dispatcher, "/review simmer-down")
        github.list_commits.assert_not_called()
        assert "ANTHROPIC_API_KEY" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_optimize_usage(self, dispatcher, telegram):
        await run(dispatcher, "/optimize")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_optimize(self, services, settings, telegram, github):
        dispatcher, llm = with_llm(services, settings, "⚡ Lazy-load gallery images\nnoise")
        github.get_file_content.return_value = AdapterResult.ok('{"dependencies": {"moment": "2.29.4"}}')

        await run(dispatcher, "/optimize simmer-down")

        github.get_file_content.assert_awaited_once_with("simmer-down", "package.json")
        assert "moment" in llm.prompts[0]
        assert "⚡ Lazy-load gallery images" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_optimize_without_package_json(self, services, settings, telegram, github):
        dispatcher, llm = with_llm(services, settings, "unused")
        github.get_file_content.return_value = AdapterResult.not_found("File 'package.json' not found")

        await run(dispatcher, "/optimize simmer-down")

        assert llm.prompts == []
        assert telegram.texts[-1].startswith("❌ Not found")

    @pytest.mark.asyncio
    async def test_chat_usage(self, dispatcher, telegram):
        await run(dispatcher, "/chat simmer-down")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_chat_includes_project_context(self, services, settings, telegram, vercel):
        dispatcher, llm = with_llm(services, settings, "The hero image is 4 MB.")
        vercel.get_project.return_value = AdapterResult.ok(
            Project(id="prj_1", name="simmer-down", framework="nextjs")
        )

        await run(dispatcher, "/chat simmer-down why is the menu slow?")

        assert "why is the menu slow?" in llm.prompts[0]
        assert "nextjs" in llm.prompts[0]
        assert "The hero image is 4 MB." in telegram.texts[-1]


class TestAcquisitionCommands:

    @pytest.mark.asyncio
    async def test_research_usage(self, dispatcher, telegram):
        await run(dispatcher, "/research")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_research_falls_back_to_sector_defaults(self, dispatcher, telegram):
        await run(dispatcher, '/research "Café Del Mar" restaurant Cartagena')

        assert len(telegram.texts) == 1
        assert "Research: Café Del Mar" in telegram.texts[0]
        assert "Sector defaults" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_research_rejects_markup_in_name(self, dispatcher, telegram):
        await run(dispatcher, '/research "<b>x</b>"')
        assert "Invalid business name" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_pitch_usage(self, dispatcher, telegram):
        await run(dispatcher, "/pitch Hotel")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_pitch_fallback_carries_roi(self, dispatcher, telegram):
        await run(dispatcher, '/pitch "Hotel Boutique" hotel')
        assert len(telegram.texts) == 1
        assert "$45,000" in telegram.texts[0]
        assert "Hotel Boutique" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_pitch_rejects_unknown_sector(self, dispatcher, telegram):
        await run(dispatcher, '/pitch "Hotel Boutique" casino')
        assert "Invalid sector" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_proposal_usage(self, dispatcher, telegram):
        await run(dispatcher, "/proposal")
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_proposal(self, dispatcher, telegram):
        await run(dispatcher, '/proposal "Villa Sol" villa starter')
        assert "Proposal for Villa Sol" in telegram.texts[0]
        assert "Setup: $997" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_proposal_invalid_tier(self, dispatcher, telegram):
        await run(dispatcher, '/proposal "Villa Sol" villa platinum')
        assert "Invalid tier" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_competitors_usage(self, dispatcher, telegram):
        await run(dispatcher, '/competitors "Café Del Mar"')
        assert telegram.texts[0].startswith("Usage:")

    @pytest.mark.asyncio
    async def test_competitors_fallback_uses_location(self, dispatcher, telegram):
        await run(dispatcher, '/competitors "Café Del Mar" restaurant Santa Marta')
        assert "(Santa Marta)" in telegram.texts[0]
        assert "Generic analysis" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_copy_usage_lists_sections(self, dispatcher, telegram):
        await run(dispatcher, '/copy "Café Del Mar" restaurant')
        assert telegram.texts[0].startswith("Usage:")
        assert "hero" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_copy_template_without_llm(self, dispatcher, telegram):
        await run(dispatcher, '/copy "Café Del Mar" restaurant CTA')
        assert "Reserve en Café Del Mar Ahora" in telegram.texts[0]
        assert "Book Café Del Mar Now" in telegram.texts[0]

    @pytest.mark.asyncio
    async def test_copy_rejects_unknown_section(self, dispatcher, telegram):
        await run(dispatcher, '/copy "Café Del Mar" restaurant footer')
        assert "Invalid section" in telegram.texts[0]


class TestSiteCommands:

    @pytest.mark.asyncio
    async def test_seo_usage(self, dispatcher, telegram, site_probe):
        await run(dispatcher, "/seo")
        assert telegram.texts[0].startswith("Usage:")
        site_probe.seo_audit.assert_not_called()

    @pytest.mark.asyncio
    async def test_seo_bare_host_gets_https(self, dispatcher, telegram, site_probe):
        site_probe.seo_audit.return_value = SeoResult(success=True, url="https://cafedelmar.co", score=85)

        await run(dispatcher, "/seo cafedelmar.co")

        site_probe.seo_audit.assert_awaited_once_with("https://cafedelmar.co")
        assert "85/100" in telegram.texts[-1]

    @pytest.mark.asyncio
    async def test_uptime_usage(self, dispatcher, telegram, site_probe):
        await run(dispatcher, "/uptime")
        assert telegram.texts[0].startswith("Usage:")
        site_probe.uptime.assert_not_called()

    @pytest.mark.asyncio
    async def test_uptime(self, dispatcher, telegram, site_probe):
        site_probe.uptime.return_value = UptimeResult(
            url="https://cafedelmar.co", status="up", response_time_ms=120, status_code=200,
            checked_at="2026-10-18T12:00:00+00:00",
        )

        await run(dispatcher, "/uptime https://cafedelmar.co")

        assert "🟢 <b>UP</b>" in telegram.texts[-1]
        assert "HTTP 200 in 120ms" in telegram.texts[-1]


class TestSetenvQuoting:

    @pytest.mark.asyncio
    async def test_quoted_value_stored_without_quotes(self, dispatcher, vercel):
        vercel.get_project.return_value = AdapterResult.ok(PROJECT)
        vercel.set_env_var.return_value = AdapterResult.ok("created")

        await run(dispatcher, '/setenv simmer-down GREETING "Hola mundo"')

        vercel.set_env_var.assert_awaited_once_with("prj_1", "GREETING", "Hola mundo")
