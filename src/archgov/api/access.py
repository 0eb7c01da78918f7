"""Access-control collaborator: project membership supplied by the gateway.

archgov performs no authentication.  The upstream gateway verifies the
caller's session and project membership and forwards the result as
``x-actor`` and ``x-project-role`` headers; these dependencies only check
that the role is high enough for the route.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import HTTPException, Request

log = logging.getLogger("archgov.access")

# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------

ROLE_RANK = {"viewer": 0, "editor": 1, "owner": 2}


def _access_required() -> bool:
    return os.environ.get("ARCHGOV_ACCESS_REQUIRED", "1") == "1"


def _resolve_member(request: Request, min_role: str) -> dict[str, Any]:
    """Return ``{"actor", "role"}`` or raise 401/403."""
    actor = request.headers.get("x-actor", "").strip()
    if not _access_required():
        return {"actor": actor or "anonymous", "role": "owner"}

    role = request.headers.get("x-project-role", "").strip().lower()
    if not actor or not role:
        log.warning(
            "access denied: missing membership headers on %s %s",
            request.method, request.url.path,
        )
        raise HTTPException(status_code=401, detail="Unauthorized")
    if ROLE_RANK.get(role, -1) < ROLE_RANK[min_role]:
        log.warning(
            "access denied: %s has role %r, %s needs %s",
            actor, role, request.url.path, min_role,
            extra={"actor": actor},
        )
        raise HTTPException(status_code=403, detail=f"Forbidden: requires {min_role} role")
    return {"actor": actor, "role": role}


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

def require_viewer(request: Request) -> dict[str, Any]:
    return _resolve_member(request, "viewer")


def require_editor(request: Request) -> dict[str, Any]:
    return _resolve_member(request, "editor")
