# ===== app/api/middleware/rate_limit_middleware.py =====
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import time

PUBLIC_PREFIX = "/api/v1/public/"
WINDOW_SECONDS = 1.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client rate limiting for the anonymous booking routes.

    Public routes have no credential to key on, so the client address is used.
    Addresses with no request in the last window are dropped, so the map only
    holds clients seen within roughly the last two windows.
    Dashboard routes are not limited here.
    """

    def __init__(self, app, requests_per_second: int = 10):
        super().__init__(app)
        self.requests_per_second = requests_per_second
        self.request_times = {}  # In production, use Redis
        self.last_sweep = 0.0

    def _sweep(self, current_time: float):
        """Forget clients whose newest request left the window"""
        stale = [
            key for key, times in self.request_times.items()
            if not times or current_time - times[-1] >= WINDOW_SECONDS
        ]
        for key in stale:
            del self.request_times[key]
        self.last_sweep = current_time

    def allow(self, client_key: str, current_time: float) -> bool:
        """Record a request for the client unless it is over the limit"""
        if current_time - self.last_sweep >= WINDOW_SECONDS:
            self._sweep(current_time)

        # Simple sliding window over the last second
        recent = [
            t for t in self.request_times.get(client_key, [])
            if current_time - t < WINDOW_SECONDS
        ]

        if len(recent) >= self.requests_per_second:
            self.request_times[client_key] = recent
            return False

        recent.append(current_time)
        self.request_times[client_key] = recent
        return True

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(PUBLIC_PREFIX):
            return await call_next(request)

        client_key = request.client.host if request.client else "unknown"

        if not self.allow(client_key, time.time()):
            return JSONResponse(
                status_code=429,
                content={
                    "error_code": "RATE_LIMITED",
                    "detail": "Rate limit exceeded. Too many requests per second.",
                    "retry_after": 1
                },
                headers={"Retry-After": "1"}
            )

        return await call_next(request)
