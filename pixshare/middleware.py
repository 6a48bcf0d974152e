import logging
import time
from contextvars import ContextVar

from starlette.types import ASGIApp, Receive, Scope, Send

from pixshare.config import settings

logger = logging.getLogger(__name__)

# Document store calls made while serving the current request.  The value
# is a one-item list so increments made in a copied context still count.
store_calls_var: ContextVar[list[int] | None] = ContextVar("store_calls", default=None)


def count_store_call() -> None:
    """Record one document store call against the current request, if any."""
    calls = store_calls_var.get()
    if calls is not None:
        calls[0] += 1


class StoreCallsMiddleware:
    """
    Reports the document store cost of each HTTP request.

    An enriched feed costs one scan plus three loads per post (the author,
    then the post again for its likes and for its comment count), so the
    number grows with the feed.  ``X-Store-Calls`` and
    ``X-Response-Time-Ms`` are added to the response, and a request going
    over ``STORE_CALLS_WARN`` calls is logged.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        calls = [0]
        token = store_calls_var.set(calls)
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-store-calls", str(calls[0]).encode()))
                message["headers"] = headers
                if calls[0] > settings.STORE_CALLS_WARN:
                    logger.warning(
                        "%s %s made %d document store calls",
                        scope["method"], scope["path"], calls[0],
                    )
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            store_calls_var.reset(token)
