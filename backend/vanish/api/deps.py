from __future__ import annotations

from fastapi import Request

from vanish.services.gate import AccessGate


def get_gate(request: Request) -> AccessGate:
    """FastAPI dependency: the gate built on startup."""
    return request.app.state.gate


def bearer_token(request: Request, allow_query: bool = False) -> str | None:
    """Token from `Authorization: Bearer ...`, or `?token=` when allowed."""
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip() or None
    if allow_query:
        return request.query_params.get("token") or None
    return None
