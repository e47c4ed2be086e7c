from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import uuid
from neighborhood_explorer.core.config import settings

class SessionMiddleware(BaseHTTPMiddleware):
    """
    Ensures every client carries a discovery session id.

    Each session owns one installed POI set; newer requests within the same
    session supersede older in-flight ones.
    """
    async def dispatch(self, request: Request, call_next):
        cookie_name = settings.SESSION_COOKIE_NAME
        session_id = request.cookies.get(cookie_name)
        created_new = False

        if not session_id:
            session_id = uuid.uuid4().hex
            created_new = True

        # Attach to request state for downstream usage (e.g. SessionManager)
        request.state.session_id = session_id

        response = await call_next(request)

        if created_new:
            response.set_cookie(
                key=cookie_name,
                value=session_id,
                max_age=settings.SESSION_COOKIE_MAX_AGE,
                httponly=True,
                secure=(settings.ENV == "production"),
                samesite="lax"
            )

        return response
