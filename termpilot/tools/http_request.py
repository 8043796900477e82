"""HTTP request tool."""

from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from termpilot.tools.base import ConfirmableTool
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_BODY_CHARS = 10_000
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


class HttpRequestInput(BaseModel):
    """Input schema for the HTTP request tool."""

    url: str = Field(..., pattern=r"^https?://", description="Target URL for the HTTP request")
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"] = Field(
        "GET", description="HTTP method (default: GET)"
    )
    headers: dict[str, str] = Field(default_factory=dict, description="HTTP headers as key-value pairs")
    body: str | None = Field(None, description="Raw request body (for POST, PUT, PATCH)")
    json_body: dict[str, Any] | list[Any] | None = Field(
        None, alias="json", description="JSON data to send (sets Content-Type: application/json)"
    )
    timeout: float = Field(30.0, gt=0, le=300, description="Request timeout in seconds (default: 30)")


class HttpRequestTool(ConfirmableTool):
    """Make HTTP requests; state-changing methods need operator confirmation."""

    name = "http_request"
    description = "Make HTTP requests to APIs and web services"
    input_model = HttpRequestInput

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__()
        self._transport = transport

    async def execute(self, args: HttpRequestInput) -> dict[str, Any]:
        if args.method not in SAFE_METHODS:
            confirmed = await self.confirm(f"HTTP {args.method} request", f"{args.method} {args.url}", True)
            if not confirmed:
                return {"url": args.url, "output": "User aborted HTTP request", "aborted": True}

        logger.info(f"HTTP {args.method} {args.url}")
        async with httpx.AsyncClient(timeout=args.timeout, transport=self._transport) as client:
            response = await client.request(
                args.method,
                args.url,
                headers=args.headers,
                content=args.body if args.json_body is None else None,
                json=args.json_body,
            )

        text = response.text
        return {
            "url": str(response.url),
            "method": args.method,
            "status_code": response.status_code,
            "success": response.is_success,
            "headers": dict(response.headers),
            "body": text[:MAX_BODY_CHARS],
            "truncated": len(text) > MAX_BODY_CHARS,
        }
