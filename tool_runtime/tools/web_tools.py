from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, Field, field_validator, model_validator

from tool_runtime.tools.errors import HttpError
from tool_runtime.tools.executor import ToolContext
from tool_runtime.tools.registry import PermissionTier, ToolDefinition, ToolRegistry


_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


class WebFetchInput(BaseModel):
    url: str = Field(min_length=1, description="URL to fetch")
    prompt: str = Field(description="Analysis prompt")

    @field_validator("url")
    @classmethod
    def require_http_url(cls, value: str) -> str:
        parts = urlsplit(value.strip())
        if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
            raise ValueError("url must be an absolute http(s) URL")
        return value.strip()


class WebSearchInput(BaseModel):
    query: str = Field(min_length=2, description="Search query")
    allowed_domains: list[str] | None = Field(default=None, description="Include only these domains")
    blocked_domains: list[str] | None = Field(default=None, description="Exclude these domains")

    @model_validator(mode="after")
    def reject_conflicting_domains(self) -> "WebSearchInput":
        overlap = set(self.allowed_domains or []) & set(self.blocked_domains or [])
        if overlap:
            raise ValueError(f"domains both allowed and blocked: {', '.join(sorted(overlap))}")
        return self


def upgrade_to_https(url: str) -> str:
    return re.sub(r"^http:", "https:", url, count=1, flags=re.IGNORECASE)


def html_to_text(html: str) -> str:
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def run_web_fetch(context: ToolContext, payload: WebFetchInput) -> str:
    target = upgrade_to_https(payload.url)
    context.check_cancelled(f"web_fetch {payload.url}")

    try:
        with httpx.Client(
            timeout=context.settings.FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=context.http_transport,
        ) as client:
            response = client.get(target)
    except httpx.HTTPError as exc:
        raise HttpError(f"Cannot fetch {payload.url}: {exc}", url=payload.url) from exc

    if not response.is_success:
        raise HttpError(
            f"Cannot fetch {payload.url}: HTTP {response.status_code}: {response.reason_phrase}",
            url=payload.url,
            status_code=response.status_code,
        )

    content = response.text
    if "text/html" in response.headers.get("content-type", ""):
        content = html_to_text(content)

    return f'Content from {payload.url} analyzed with prompt "{payload.prompt}":\n\n{content}'


def run_web_search(context: ToolContext, payload: WebSearchInput) -> str:
    if context.audit_logger is not None:
        context.audit_logger.log_web_search(payload.query, payload.allowed_domains, payload.blocked_domains)
    return f'Search results for "{payload.query}" would appear here (search API integration needed)'


def build_web_tool_dispatch_map() -> dict[str, Any]:
    return {
        "web_fetch": run_web_fetch,
        "web_search": run_web_search,
    }


def register_web_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolDefinition(
            name="web_fetch",
            description="Fetch and analyze web content",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=WebFetchInput,
        )
    )
    registry.register(
        ToolDefinition(
            name="web_search",
            description="Search the web for current information",
            permission_tier=PermissionTier.READ_ONLY,
            input_model=WebSearchInput,
        )
    )
