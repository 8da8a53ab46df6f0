"""
QA Bug Dashboard
Authentication & Authorization Middleware.

Provides:
    - API key authentication via X-API-Key header or ?api_key= query param
    - Role check for state-changing requests
    - Content-Type enforcement for state-changing requests

Security model:
    - Reads (GET/HEAD) under /api/v1/* are public; a key, when sent, must be valid
    - POST/PUT/PATCH/DELETE require a key whose role is at least 'editor'
    - /api/v1/health* is always open

Configuration (app config / env vars):
    API_KEYS          comma-separated "<key>:<role>[:<email>]" entries,
                      e.g. "k1:admin:lead@x.com,k2:editor:qa@x.com,k3:viewer"
                      role is admin|editor|viewer; the e-mail becomes the
                      reporter of bugs created with that key
    API_AUTH_ENABLED  "false" disables auth (development only); every caller
                      is then an admin named dev@localhost
"""

import logging
from typing import NamedTuple, Optional

from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

# ── Roles ────────────────────────────────────────────────────────────────────

ROLES = {"admin", "editor", "viewer"}

# Role hierarchy: admin > editor > viewer
ROLE_HIERARCHY = {
    "admin": {"admin", "editor", "viewer"},
    "editor": {"editor", "viewer"},
    "viewer": {"viewer"},
}

MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")
MUTATION_ROLE = "editor"
DEV_USER_EMAIL = "dev@localhost"


class ApiKey(NamedTuple):
    role: str
    email: Optional[str]


def parse_api_keys(raw: str) -> dict[str, ApiKey]:
    """
    Parse an API_KEYS string into {key: ApiKey}.

    Keys without a role default to 'viewer'; unknown roles are downgraded
    to 'viewer' with a warning.
    """
    if not raw or not raw.strip():
        return {}

    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [p.strip() for p in entry.split(":", 2)]
        key = parts[0]
        role = parts[1].lower() if len(parts) > 1 and parts[1] else "viewer"
        email = parts[2] if len(parts) > 2 and parts[2] else None
        if role not in ROLES:
            logger.warning("Unknown role '%s' for API key, defaulting to 'viewer'", role)
            role = "viewer"
        keys[key] = ApiKey(role=role, email=email)
    return keys


def _is_auth_enabled() -> bool:
    value = str(current_app.config.get("API_AUTH_ENABLED", "true"))
    return value.lower() not in ("false", "0", "no", "off")


def _get_api_key_from_request() -> Optional[str]:
    """Extract API key from request header or query parameter."""
    key = request.headers.get("X-API-Key", "").strip()
    if key:
        return key
    return request.args.get("api_key", "").strip() or None


def has_role(minimum_role: str) -> bool:
    """True when the current caller's role includes ``minimum_role``."""
    role = getattr(g, "current_user_role", None)
    return minimum_role in ROLE_HIERARCHY.get(role, set())


def current_user_email() -> Optional[str]:
    return getattr(g, "current_user_email", None)


def _check_content_type():
    """
    For state-changing requests with a body, require application/json.
    HTML forms cannot send that content type.
    """
    if request.method in MUTATING_METHODS:
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return jsonify({
                "error": "Content-Type must be application/json for state-changing requests"
            }), 415
    return None


# ── before_request hook installer ────────────────────────────────────────────

def init_auth(app):
    """Install the authentication hook for /api/v1/* routes."""

    @app.before_request
    def _before_request_auth():
        g.current_user_role = None
        g.current_user_email = None

        if not request.path.startswith("/api/v1/"):
            return None
        if request.path == "/api/v1/health" or request.path.startswith("/api/v1/health/"):
            return None
        if request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if not _is_auth_enabled():
            g.current_user_role = "admin"
            g.current_user_email = DEV_USER_EMAIL
            return None

        api_key = _get_api_key_from_request()
        if api_key:
            entry = parse_api_keys(current_app.config.get("API_KEYS", "")).get(api_key)
            if entry is None:
                logger.warning("Invalid API key attempt: %s...", api_key[:8])
                return jsonify({"error": "Invalid API key"}), 401
            g.current_user_role = entry.role
            g.current_user_email = entry.email

        if request.method not in MUTATING_METHODS:
            return None

        if g.current_user_role is None:
            return jsonify({"error": "Authentication required. Provide X-API-Key header."}), 401

        if not has_role(MUTATION_ROLE):
            logger.warning(
                "Access denied: role '%s' tried %s %s",
                g.current_user_role, request.method, request.path,
            )
            return jsonify({"error": "Insufficient permissions"}), 403

        return None

    with app.app_context():
        logger.info("Auth middleware installed (enabled=%s)", _is_auth_enabled())
