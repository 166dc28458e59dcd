from urllib.parse import parse_qsl, urlencode

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.identity.api.http.deps import get_redirect_capture

AUTHORIZATION_PATH_PREFIX = "/oauth2/authorization/"
REDIRECT_PARAM = "redirect"


def strip_query_param(query_string: bytes, name: str) -> bytes:
    """Query string without any occurrence of ``name``."""
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    kept = [(key, value) for key, value in pairs if key != name]
    return urlencode(kept).encode("latin-1")


class RedirectCaptureMiddleware(BaseHTTPMiddleware):
    """Captures ``?redirect=`` on login initiation and hides it from the provider.

    The first ``redirect`` value is handed to ``RedirectCaptureService``,
    which keeps it only if allow-listed. The parameter is removed from the
    request before routing either way.
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(AUTHORIZATION_PATH_PREFIX):
            targets = request.query_params.getlist(REDIRECT_PARAM)
            if targets:
                await get_redirect_capture(request).capture(
                    request.state.session_id, targets[0]
                )
                request.scope["query_string"] = strip_query_param(
                    request.scope.get("query_string", b""), REDIRECT_PARAM
                )
        return await call_next(request)
