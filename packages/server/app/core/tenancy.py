"""
Tenant resolution and subdomain rules.

Every wedding may claim a subdomain of the public domain. Requests arriving on
``{sub}.{domain}`` are rewritten onto the ``/subdomain/{sub}`` routes before
routing happens.
"""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger()

RESERVED_SUBDOMAINS = frozenset({
    "www", "app", "api", "admin", "mail", "ftp", "blog", "shop", "store",
    "support", "help", "docs", "status", "dev", "test", "staging", "prod",
    "cdn", "static", "assets", "images", "files", "download", "upload",
})

# Hosts that never map to a tenant even though they look like subdomains.
PLATFORM_SUBDOMAINS = frozenset({"www", "app"})

SKIP_PREFIXES = (
    "/api/", "/_next/", "/admin/", "/auth/", "/superadmin/", "/pricing",
    "/join", "/test", "/debug", "/demo", "/docs", "/redoc", "/openapi.json",
    "/health", "/ready", "/subdomain/",
)

_SUBDOMAIN_RE = re.compile(r"^[a-z0-9-]+$")
_BASE36 = string.ascii_lowercase + string.digits


# ---------------------------------------------------------------------------
# Host parsing
# ---------------------------------------------------------------------------

def extract_subdomain(host: str) -> Optional[str]:
    """First DNS label of ``host`` when it names a subdomain, else None."""
    hostname = (host or "").split(":", 1)[0].lower()
    if not hostname:
        return None
    parts = hostname.split(".")

    if "localhost" in hostname or "127.0.0.1" in hostname:
        if len(parts) > 1 and parts[0] != "www":
            return parts[0]
        return None

    if len(parts) >= 3:
        return parts[0]
    return None


# ---------------------------------------------------------------------------
# Validation & generation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubdomainCheck:
    valid: bool
    error: Optional[str] = None


def validate_subdomain(value: str) -> SubdomainCheck:
    """Syntactic and reserved-word checks. Uniqueness is the caller's job."""
    if len(value) < 3:
        return SubdomainCheck(False, "Subdomain must be at least 3 characters long")
    if len(value) > 50:
        return SubdomainCheck(False, "Subdomain must be no more than 50 characters long")
    if not _SUBDOMAIN_RE.match(value):
        return SubdomainCheck(False, "Subdomain can only contain lowercase letters, numbers, and hyphens")
    if value.startswith("-") or value.endswith("-"):
        return SubdomainCheck(False, "Subdomain cannot start or end with a hyphen")
    if value in RESERVED_SUBDOMAINS:
        return SubdomainCheck(False, "This subdomain is reserved and cannot be used")
    return SubdomainCheck(True)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def generate_subdomain(name: str) -> str:
    """Slug of the wedding name plus a random 6 character suffix."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    slug = slugify(name)
    return f"{slug}-{suffix}" if slug else f"wedding-{suffix}"


def wedding_url(subdomain: str, base_domain: str) -> str:
    domain = re.sub(r"^https?://", "", base_domain).rstrip("/")
    return f"https://{subdomain}.{domain}"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class TenantResolverMiddleware(BaseHTTPMiddleware):
    """Rewrite ``{sub}.{domain}/path`` to ``/subdomain/{sub}/path``.

    Wedding existence is checked by the tenant routes, not here.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path == "/" or path.startswith(SKIP_PREFIXES):
            return await call_next(request)

        subdomain = extract_subdomain(request.headers.get("host", ""))
        if subdomain and subdomain not in PLATFORM_SUBDOMAINS:
            rewritten = f"/subdomain/{subdomain}{path}"
            request.scope["path"] = rewritten
            request.scope["raw_path"] = rewritten.encode()
            request.state.tenant_subdomain = subdomain
            log.debug("tenant.rewrite", subdomain=subdomain, path=path, rewritten=rewritten)

        return await call_next(request)
