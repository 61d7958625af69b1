"""Rate limiting gate for FastAPI/Starlette applications.

Reads the caller identity from a request header, evaluates the configured
rule and turns a denial into a 429 response with a Retry-After header.
"""

from typing import Optional, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from admission.app.core.config import settings
from admission.app.core.logging import get_log_context, get_logger
from admission.app.exceptions import MissingIdentityError, StorageUnavailableError
from admission.app.rules.base import RateLimitRule
from admission.app.rules.region import RegionDelegator

logger = get_logger(__name__)

AdmissionRule = Union[RateLimitRule, RegionDelegator]

RATE_LIMIT_EXCEEDED_MESSAGE = "Rate limit exceeded."


def get_identity(request: Request, header_name: str) -> str:
    """Extract the identity key from the request.

    Raises:
        MissingIdentityError: If the header is absent or blank
    """
    identity = request.headers.get(header_name, "").strip()
    if not identity:
        raise MissingIdentityError(header_name)
    return identity


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce a rate limit rule on requests.

    The identity is stored on ``request.state.access_token`` for endpoints.
    Storage failures fail open or closed according to ``fail_closed``.
    """

    def __init__(
        self,
        app,
        rule: AdmissionRule,
        header_name: Optional[str] = None,
        fail_closed: Optional[bool] = None,
    ):
        """Initialize the middleware.

        Args:
            app: ASGI application
            rule: Rule or RegionDelegator evaluated for every request
            header_name: Identity header, defaults to settings.access_token_header
            fail_closed: Deny when storage is unavailable, defaults to
                settings.rate_limit_fail_closed
        """
        super().__init__(app)
        self.rule = rule
        self.header_name = header_name or settings.access_token_header
        self.fail_closed = (
            fail_closed if fail_closed is not None else settings.rate_limit_fail_closed
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        try:
            identity = get_identity(request, self.header_name)
        except MissingIdentityError as e:
            return JSONResponse(status_code=e.status_code, content={"detail": e.message})

        request.state.access_token = identity

        try:
            result = await self.rule.evaluate(identity)
        except StorageUnavailableError as e:
            context = get_log_context(
                request_id=getattr(request.state, "request_id", None),
                path=request.url.path,
                method=request.method,
            )
            if self.fail_closed:
                logger.warning(
                    f"Rate limiting fail-closed triggered: {e.message}. Request denied.",
                    extra=context,
                )
                return JSONResponse(status_code=e.status_code, content={"detail": e.message})
            logger.warning(
                f"Rate limiting fail-open triggered: {e.message}. "
                "Request allowed without rate limit check.",
                extra=context,
            )
            return await call_next(request)

        if not result.allowed:
            return PlainTextResponse(
                RATE_LIMIT_EXCEEDED_MESSAGE,
                status_code=self.rule.denial_response(),
                headers={"Retry-After": str(result.retry_after_seconds)},
            )

        return await call_next(request)
