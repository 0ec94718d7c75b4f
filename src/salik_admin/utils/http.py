import httpx
import structlog

log = structlog.get_logger()

USER_AGENT = "salik_admin/1.0"


def get_client(
    base_url: str = "",
    timeout: float = 30.0,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an httpx AsyncClient with sensible defaults.

    Args:
        base_url: Prefix for relative request paths (empty for absolute URLs)
        timeout: Request timeout in seconds (default: 30)
        headers: Extra default headers (merged over the user agent)
        transport: Optional transport override (tests use httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient
    """
    default_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if headers:
        default_headers.update(headers)

    limits = httpx.Limits(
        max_keepalive_connections=10,
        max_connections=20,
        keepalive_expiry=30.0,
    )

    if transport is not None:
        return httpx.AsyncClient(
            base_url=base_url,
            headers=default_headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    return httpx.AsyncClient(
        http2=True,
        base_url=base_url,
        headers=default_headers,
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


def log_response(resp: httpx.Response, **context: object) -> None:
    """Log the outcome of a request; error statuses are logged at ERROR."""
    fields = {
        "method": resp.request.method,
        "url": str(resp.request.url),
        "status": resp.status_code,
        **context,
    }
    if resp.is_success:
        log.info("http_request_success", **fields)
    else:
        log.error(
            "http_status_error",
            response_text=resp.text[:500] if resp.text else None,
            **fields,
        )
