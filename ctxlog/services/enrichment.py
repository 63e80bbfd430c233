from __future__ import annotations

from typing import Any

from ctxlog.observability.middleware import ExecutionContext


async def enrich_from_headers(context: ExecutionContext) -> dict[str, Any]:
    """Sample enrichment callback: tenant, client and caller identity."""

    fields: dict[str, Any] = {}

    tenant_id = context.headers.get("x-tenant-id")
    if tenant_id:
        fields["tenant_id"] = tenant_id

    user_agent = context.headers.get("user-agent")
    if user_agent:
        fields["user_agent"] = user_agent

    if context.client:
        fields["client_ip"] = context.client

    identity = context.identity
    if identity is not None and getattr(identity, "is_authenticated", False):
        fields["user_id"] = getattr(identity, "display_name", None) or str(identity)

    return fields
