from starlette.middleware.base import BaseHTTPMiddleware

from .observability import correlation_context, new_correlation_id


REQUEST_ID_HEADER = "x-request-id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        client_host = request.client.host if request.client else None
        ip = request.headers.get("x-forwarded-for", client_host)
        request.state.ip = ip
        request.state.user_agent = request.headers.get("user-agent")
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_correlation_id()
        with correlation_context(request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
