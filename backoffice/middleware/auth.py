"""
Back Office — JWT authentication middleware

Resolves the caller's identity from the Bearer token and stores it on
request.state.identity. Fails open: a missing or bad token leaves the
identity at None and the request continues. Route dependencies
(api.deps.require_roles) decide whether anonymous access is acceptable.
"""
import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from backoffice.core.exceptions import InvalidToken
from backoffice.core.security import TokenService

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, token_service: TokenService | None = None):
        super().__init__(app)
        self.tokens = token_service or TokenService()

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.identity = None

        scheme, _, token = request.headers.get("Authorization", "").strip().partition(" ")
        token = token.strip()
        if scheme.lower() == "bearer" and token:
            try:
                request.state.identity = self.tokens.validate(token)
            except InvalidToken as exc:
                logger.warning(
                    "Rejected bearer token on %s %s: %s", request.method, request.url.path, exc.message
                )

        return await call_next(request)
