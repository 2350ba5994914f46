from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from copyit.domains.identity.demo import is_visitor_id, new_visitor_id


class DemoVisitorMiddleware(BaseHTTPMiddleware):
    """В демо-режиме выдает посетителю id песочницы в cookie"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.app.state.demo:
            return await call_next(request)

        cookie_name = request.app.state.settings.demo_cookie_name
        visitor_id = request.cookies.get(cookie_name)
        issued = not is_visitor_id(visitor_id)
        if issued:
            visitor_id = new_visitor_id()

        request.state.demo_visitor = visitor_id
        response = await call_next(request)
        if issued:
            response.set_cookie(cookie_name, visitor_id, httponly=True, samesite="lax")
        return response
