"""
Per-request deadline.

`RequestTimeoutMiddleware` is a plain ASGI middleware: it runs the rest of
the app in a task and, if no response has started when the deadline passes,
cancels that task and answers with a timeout response instead. Cancelling
the task also aborts whatever the handler was awaiting (MediaWiki calls,
replica queries).

Handlers reach their deadline through `request.state.deadline`.
"""

from __future__ import annotations

import asyncio
import logging
import time

from fastapi import Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import responses

logger = logging.getLogger(__name__)


class RequestDeadline:
    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        self.started_at = time.monotonic()
        self.timed_out = False
        self.timeout_response: Response | None = None

    def remaining(self) -> float:
        return max(0.0, self.timeout_s - (time.monotonic() - self.started_at))

    def set_timeout_response(self, response: Response) -> None:
        """
        Use `response` instead of the default 503 if this request times out.
        """
        self.timeout_response = response

    def expire(self) -> None:
        self.timed_out = True


def get_deadline(request: Request) -> RequestDeadline | None:
    return getattr(request.state, "deadline", None)


class RequestTimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout_s: float = 60.0) -> None:
        self.app = app
        self.timeout_s = timeout_s

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        deadline = RequestDeadline(self.timeout_s)
        scope.setdefault("state", {})["deadline"] = deadline
        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                if deadline.timed_out:
                    # The timeout response owns the connection now.
                    return
                response_started = True
            elif deadline.timed_out and not response_started:
                return
            await send(message)

        task = asyncio.create_task(self.app(scope, receive, send_wrapper))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_s)
            if task in done:
                task.result()
                return

            if response_started:
                await task
                return

            deadline.expire()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                # Only the handler was cancelled; our own cancellation goes on.
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
        finally:
            if not task.done():
                task.cancel()

        logger.warning(
            "[timeout] %s %s exceeded %.1fs",
            scope.get("method", ""),
            scope.get("path", ""),
            self.timeout_s,
        )
        response = deadline.timeout_response or self._default_response(scope)
        await response(scope, receive, send)

    @staticmethod
    def _default_response(scope: Scope) -> Response:
        request = Request(scope)
        return responses.render_http_exception(
            request,
            HTTPException(status_code=503, detail="Timeout."),
        )
