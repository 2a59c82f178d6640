"""
Identifier normalization and validation utilities.

Free-form chat arguments reach the adapters only through these helpers:
extract_identifier() turns a Vercel deployment URL or a GitHub URL into a bare
project/repo name, and the validate_* predicates gate every value that is
interpolated into a mutating API call.
"""

import re
import unicodedata
from urllib.parse import urlparse

# https://<label>.vercel.app[/...]
VERCEL_URL_RE = re.compile(
    r'^https?://([a-z0-9][a-z0-9-]*)\.vercel\.app(?:[/?#].*)?$',
    re.IGNORECASE,
)

# Deployment URLs carry "-<hash>[-<team>]" after the project name.
# The hash is 8-10 alphanumerics with at least one digit.
VERCEL_DEPLOYMENT_SUFFIX_RE = re.compile(
    r'-(?=[a-z0-9]*[0-9])[a-z0-9]{8,10}(?:-[a-z0-9-]+)?$'
)

# https://github.com/<owner>/<repo>[.git][/]
GITHUB_URL_RE = re.compile(
    r'^https?://(?:www\.)?github\.com/[^/\s]+/([^/\s?#]+?)(?:\.git)?/?$',
    re.IGNORECASE,
)

PROJECT_NAME_RE = re.compile(r'[a-z0-9][a-z0-9-]{0,99}')
COMPONENT_NAME_RE = re.compile(r'[A-Z][A-Za-z0-9]{0,49}')
BUSINESS_NAME_RE = re.compile(r'[A-Za-z0-9áéíóúüñÁÉÍÓÚÜÑ \'",.\-]{1,100}')
ENV_KEY_RE = re.compile(r'[A-Z_][A-Z0-9_]{0,99}')
BRANCH_NAME_RE = re.compile(r'[A-Za-z0-9_][A-Za-z0-9._/-]{0,99}')
DEPLOYMENT_ID_RE = re.compile(r'[A-Za-z0-9_]{1,64}')
WORKFLOW_FILE_RE = re.compile(r'[A-Za-z0-9_.-]{1,100}\.ya?ml')
DOMAIN_RE = re.compile(
    r'(?=.{4,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}',
    re.IGNORECASE,
)


def extract_identifier(token: str) -> str:
    """
    Extract a canonical project/repo identifier from a chat argument.

    Input formats handled (first match wins):
    - "https://simmer-down-ab12cd34-team.vercel.app" -> "simmer-down"
    - "https://simmer-down.vercel.app"               -> "simmer-down"
    - "https://github.com/Owner/my-repo.git"         -> "my-repo"
    - anything else                                  -> returned unchanged

    Pure and total: never raises, and applying it twice gives the same result
    as applying it once.
    """
    match = VERCEL_URL_RE.match(token)
    if match:
        label = match.group(1).lower()
        return VERCEL_DEPLOYMENT_SUFFIX_RE.sub('', label) or label

    match = GITHUB_URL_RE.match(token)
    if match:
        return match.group(1)

    return token


def validate_project_name(name: str) -> bool:
    """Lowercase alphanumerics and hyphens, leading alphanumeric, max 100 chars."""
    return bool(PROJECT_NAME_RE.fullmatch(name))


def validate_component_name(name: str) -> bool:
    """Capitalized word: uppercase letter then up to 49 alphanumerics."""
    return bool(COMPONENT_NAME_RE.fullmatch(name))


def validate_business_name(name: str) -> bool:
    """1-100 chars: letters (incl. Spanish accents), digits, space, quotes, , . -"""
    return bool(BUSINESS_NAME_RE.fullmatch(name))


def validate_env_key(key: str) -> bool:
    return bool(ENV_KEY_RE.fullmatch(key))


def validate_domain(domain: str) -> bool:
    return bool(DOMAIN_RE.fullmatch(domain))


def validate_url(value: str) -> bool:
    """http(s) URL with a host and no whitespace."""
    if not value or any(ch.isspace() for ch in value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def slugify_project_name(business_name: str) -> str:
    """
    Derive a project identifier from a display name.

    "Café Del Mar" -> "cafe-del-mar". Accents are folded, every run of other
    characters becomes one hyphen, and the result is capped at 100 chars.
    """
    folded = unicodedata.normalize('NFKD', business_name)
    ascii_only = folded.encode('ascii', 'ignore').decode('ascii').lower()
    slug = re.sub(r'[^a-z0-9]+', '-', ascii_only).strip('-')
    return slug[:100].rstrip('-')


def validate_branch_name(branch: str) -> bool:
    """Git ref: alphanumerics, ".", "_", "/", "-"; no "..", no leading "-" or "/"."""
    return bool(BRANCH_NAME_RE.fullmatch(branch)) and '..' not in branch


def validate_deployment_id(deployment_id: str) -> bool:
    return bool(DEPLOYMENT_ID_RE.fullmatch(deployment_id))


def validate_workflow_file(name: str) -> bool:
    """Workflow file name such as "genesis-build.yml"."""
    return bool(WORKFLOW_FILE_RE.fullmatch(name))
