"""Web fetch tool for retrieving text content over HTTP(S)."""

from typing import Any
from urllib.parse import urlparse

import httpx

from agent_runtime.telemetry import get_logger
from agent_runtime.tools.builtin import BuiltinTool
from agent_runtime.tools.types import (
    CancellationToken,
    ToolConfirmationOutcome,
    ToolDefinition,
    ToolInfoConfirmationDetails,
    ToolParameter,
)

log = get_logger(__name__)

FETCH_TIMEOUT_SECONDS = 15.0
MAX_CONTENT_CHARS = 200_000
_TEXTUAL_CONTENT_TYPES = ("text/", "application/json", "application/xml", "application/xhtml+xml")


def _validate_url(url: Any) -> str | None:
    if not isinstance(url, str) or not url.strip():
        return "The 'url' parameter must be a non-empty string."
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "The 'url' must start with http:// or https://."
    return None


def _request_error_message(url: str, error: Exception) -> str:
    """Convert client errors to a message the model can act on."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return f"Request to {url} failed with status {status}"
    if isinstance(error, httpx.TimeoutException):
        return f"Request to {url} timed out after {FETCH_TIMEOUT_SECONDS:.0f}s"
    if isinstance(error, httpx.RequestError):
        return f"Cannot reach {url}: {error}"
    return str(error)


async def web_fetch_executor(url: str, *, token: CancellationToken) -> dict[str, Any]:
    """Execute web_fetch tool.

    Args:
        url: http(s) URL to fetch.
        token: Cancellation token for the current turn.

    Returns:
        Dictionary with:
        - success: bool
        - url: final URL after redirects
        - status_code: int or None
        - content_type: str or None
        - content: str (possibly truncated) or None if error
        - truncated: bool
        - error: str or None
    """
    validation_error = _validate_url(url)
    if validation_error:
        return {"success": False, "url": url, "content": None, "error": validation_error}

    if token.is_cancelled:
        return {"success": False, "url": url, "content": None, "error": "Fetch cancelled by user."}

    try:
        async with httpx.AsyncClient(
            timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as error:
        message = _request_error_message(url, error)
        log.warning("web_fetch_failed", url=url, error=message)
        return {"success": False, "url": url, "content": None, "error": message}

    content_type = response.headers.get("content-type", "")
    if content_type and not content_type.lower().startswith(_TEXTUAL_CONTENT_TYPES):
        return {
            "success": False,
            "url": str(response.url),
            "status_code": response.status_code,
            "content_type": content_type,
            "content": None,
            "error": f"Unsupported content type: {content_type}",
        }

    text = response.text
    truncated = len(text) > MAX_CONTENT_CHARS
    log.debug("web_fetch_completed", url=str(response.url), chars=len(text), truncated=truncated)
    return {
        "success": True,
        "url": str(response.url),
        "status_code": response.status_code,
        "content_type": content_type or None,
        "content": text[:MAX_CONTENT_CHARS],
        "truncated": truncated,
        "error": None,
    }


web_fetch_tool = ToolDefinition(
    name="web_fetch",
    display_name="WebFetch",
    description=(
        "Fetch a web page or text document over http(s), including local and private "
        f"network addresses. Content longer than {MAX_CONTENT_CHARS} characters is truncated."
    ),
    parameters=[
        ToolParameter(
            name="url",
            type="string",
            description="URL starting with http:// or https://",
            required=True,
        ),
    ],
)


class _FetchApproval:
    """Info confirmation listing the URL, with a session-wide "proceed always"."""

    def __init__(self) -> None:
        self.auto_approve = False

    async def __call__(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolInfoConfirmationDetails | bool:
        url = args.get("url")
        if self.auto_approve or _validate_url(url):
            return False

        async def on_confirm(outcome: ToolConfirmationOutcome) -> None:
            if outcome == ToolConfirmationOutcome.PROCEED_ALWAYS:
                self.auto_approve = True

        return ToolInfoConfirmationDetails(
            title="Confirm Web Fetch",
            prompt=f"Fetch {url}",
            urls=[str(url)],
            on_confirm=on_confirm,
        )


def create_web_fetch_tool() -> BuiltinTool:
    """Build the web_fetch tool with its own approval state."""
    return BuiltinTool(web_fetch_tool, web_fetch_executor, confirm=_FetchApproval())
