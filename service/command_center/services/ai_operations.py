"""
Claude-assisted project analysis: failure diagnosis, code review,
performance recommendations and free-form Q&A.

Callers collect the inputs (logs, commits, package.json) from the Vercel and
GitHub adapters; these functions only build the prompt and shape the reply.
"""

import re
from typing import Optional

from ..agents.prompts import CHAT_PROMPT, FIX_PROMPT, OPTIMIZE_PROMPT, REVIEW_PROMPT
from ..agents.schemas import AnalysisResult
from ..results import AdapterResult
from .llm import LLMClient

ROOT_CAUSE_RE = re.compile(r'ROOT CAUSE:([\s\S]*?)(?=FIX:|$)', re.IGNORECASE)
FIX_RE = re.compile(r'FIX:([\s\S]*?)(?=PREVENTION:|$)', re.IGNORECASE)
PREVENTION_RE = re.compile(r'PREVENTION:([\s\S]*?)$', re.IGNORECASE)

REVIEW_MARKERS = ("🔴", "🟡", "🟢")
OPTIMIZE_MARKER = "⚡"
MAX_RECOMMENDATIONS = 5
MAX_FILE_PREVIEW = 500


def _section(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip(" \t\n*#") if match else ""


def parse_fix_sections(project: str, text: str) -> AnalysisResult:
    """
    Split a diagnosis reply into ROOT CAUSE / FIX / PREVENTION.

    If the reply has no recognizable sections, the whole text becomes the
    analysis.
    """
    root_cause = _section(ROOT_CAUSE_RE, text)
    fix = _section(FIX_RE, text)
    prevention = _section(PREVENTION_RE, text)

    if not (root_cause or fix or prevention):
        return AnalysisResult(project=project, analysis=text.strip())

    return AnalysisResult(
        project=project,
        analysis=root_cause,
        fixes=[fix] if fix else [],
        recommendations=[prevention] if prevention else [],
    )


async def analyze_and_fix(
    llm: LLMClient,
    project: str,
    error_logs: list[str],
    build_logs: list[str],
) -> AdapterResult[AnalysisResult]:
    prompt = FIX_PROMPT.format(
        project=project,
        error_logs="\n".join(error_logs[:20]) or "No errors found",
        build_logs="\n".join(build_logs[-30:]) or "No build logs available",
    )
    result = await llm.complete(prompt)
    if not result.success:
        return result
    return AdapterResult.ok(parse_fix_sections(project, result.payload))


async def review_code(
    llm: LLMClient,
    project: str,
    commits: list[str],
    files: Optional[dict[str, str]] = None,
) -> AdapterResult[AnalysisResult]:
    previews = "\n\n".join(
        f"--- {name} ---\n{content[:MAX_FILE_PREVIEW]}"
        for name, content in list((files or {}).items())[:5]
    )
    prompt = REVIEW_PROMPT.format(
        project=project,
        commits="\n".join(commits[:5]) or "No recent commits",
        files=previews or "No code available",
    )
    result = await llm.complete(prompt)
    if not result.success:
        return result

    text = result.payload
    recommendations = [
        line.strip() for line in text.splitlines()
        if line.strip().startswith(REVIEW_MARKERS)
    ][:MAX_RECOMMENDATIONS]
    return AdapterResult.ok(AnalysisResult(project=project, analysis=text, recommendations=recommendations))


async def optimize_project(
    llm: LLMClient,
    project: str,
    package_json: str,
) -> AdapterResult[AnalysisResult]:
    prompt = OPTIMIZE_PROMPT.format(project=project, package_json=package_json or "{}")
    result = await llm.complete(prompt)
    if not result.success:
        return result

    text = result.payload
    recommendations = [
        line.strip() for line in text.splitlines() if OPTIMIZE_MARKER in line
    ][:MAX_RECOMMENDATIONS]
    return AdapterResult.ok(AnalysisResult(project=project, analysis=text, recommendations=recommendations))


async def chat_about_project(
    llm: LLMClient,
    project: str,
    question: str,
    context: Optional[str] = None,
) -> AdapterResult[AnalysisResult]:
    prompt = CHAT_PROMPT.format(
        project=project,
        context=f"\nCONTEXT:\n{context}\n" if context else "",
        question=question,
    )
    result = await llm.complete(prompt)
    if not result.success:
        return result
    return AdapterResult.ok(AnalysisResult(project=project, analysis=result.payload.strip()))
