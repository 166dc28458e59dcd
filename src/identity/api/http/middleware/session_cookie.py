from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.identity.core.security import generate_session_id
from src.identity.runtime.context import get_config


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Attaches a session id to every request, issuing a cookie for new sessions.

    A route may rotate the session by assigning a new
    ``request.state.session_id``; the cookie is then reissued with it.
    """

    async def dispatch(self, request: Request, call_next):
        app_config = get_config().app
        session_id = request.cookies.get(app_config.session_cookie_name)
        if not session_id:
            session_id = generate_session_id()
            issued = None
        else:
            issued = session_id
        request.state.session_id = session_id

        response = await call_next(request)

        current = request.state.session_id
        if current != issued:
            response.set_cookie(
                key=app_config.session_cookie_name,
                value=current,
                max_age=app_config.session_max_age,
                httponly=True,
                secure=app_config.environment == "production",
                samesite="lax",
                path="/",
            )
        return response
