import time
from contextvars import ContextVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from conduit.db import deadline_after

# Statements executed so far by the current request.
query_count_var: ContextVar[int] = ContextVar("query_count", default=0)


def install_query_counter(engine: AsyncEngine) -> None:
    """
    Count every statement *engine* sends to the database in ``query_count_var``.

    The listener is registered per engine, so both the production engine
    and each test engine need one call.
    """

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _on_statement(conn, cursor, statement, parameters, context, executemany):
        query_count_var.set(query_count_var.get() + 1)


def _append_headers(message: Message, extra: dict[str, str]) -> None:
    headers = list(message.get("headers", []))
    headers.extend((name.encode(), value.encode()) for name, value in extra.items())
    message["headers"] = headers


class RequestContextMiddleware:
    """
    Per-request context for HTTP requests.

    - Binds the request deadline (``request_timeout`` seconds) that the
      query helpers combine with their own per-statement timeout.
    - Resets the statement counter and reports it in ``X-Query-Count``.
    - Reports the handling time in ``X-Response-Time-Ms``.

    Written as plain ASGI rather than ``BaseHTTPMiddleware`` so the handler
    runs in this task and shares its ``ContextVar`` values.
    """

    def __init__(self, app: ASGIApp, *, request_timeout: float) -> None:
        self.app = app
        self.request_timeout = request_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        started = time.perf_counter()
        count_token = query_count_var.set(0)

        async def send_with_diagnostics(message: Message) -> None:
            if message["type"] == "http.response.start":
                elapsed_ms = (time.perf_counter() - started) * 1000
                _append_headers(message, {
                    "x-response-time-ms": f"{elapsed_ms:.2f}",
                    "x-query-count": str(query_count_var.get()),
                })
            await send(message)

        try:
            with deadline_after(self.request_timeout):
                await self.app(scope, receive, send_with_diagnostics)
        finally:
            query_count_var.reset(count_token)
