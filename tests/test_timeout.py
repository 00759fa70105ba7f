from __future__ import annotations

import asyncio

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.testclient import TestClient

from core.timeout import RequestDeadline, RequestTimeoutMiddleware, get_deadline

SLOW_S = 5.0


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestTimeoutMiddleware, timeout_s=0.25)

    @app.get("/fast")
    async def fast(request: Request):
        deadline = get_deadline(request)
        return {"remaining": deadline.remaining() > 0}

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(SLOW_S)
        return {"done": True}

    @app.get("/api/slow")
    async def api_slow():
        await asyncio.sleep(SLOW_S)
        return {"done": True}

    @app.get("/stream")
    async def stream():
        async def chunks():
            yield b"first,"
            await asyncio.sleep(0.5)
            yield b"second"

        return StreamingResponse(chunks(), media_type="text/plain")

    @app.get("/custom")
    async def custom(request: Request):
        get_deadline(request).set_timeout_response(
            JSONResponse({"statue": 503, "error": "Timeout."}, status_code=503)
        )
        await asyncio.sleep(SLOW_S)
        return {"done": True}

    return app


def test_fast_request_passes_through():
    client = TestClient(build_app())

    response = client.get("/fast")

    assert response.status_code == 200
    assert response.json() == {"remaining": True}


def test_slow_request_gets_default_timeout_page():
    client = TestClient(build_app())

    response = client.get("/slow")

    assert response.status_code == 503
    assert "Timeout." in response.text
    assert response.headers["content-type"].startswith("text/html")


def test_slow_api_request_gets_json_timeout():
    client = TestClient(build_app())

    response = client.get("/api/slow")

    assert response.status_code == 503
    assert response.json() == {"status": 503, "error": "Timeout."}


def test_handler_can_replace_timeout_response():
    client = TestClient(build_app())

    response = client.get("/custom")

    assert response.status_code == 503
    assert response.json() == {"statue": 503, "error": "Timeout."}


def test_deadline_remaining_never_negative():
    deadline = RequestDeadline(0)

    assert deadline.remaining() == 0.0
    assert not deadline.timed_out
    deadline.expire()
    assert deadline.timed_out


def test_started_response_is_not_replaced():
    client = TestClient(build_app())

    response = client.get("/stream")

    assert response.status_code == 200
    assert response.text == "first,second"


def raw_scope(path: str = "/api/x") -> dict:
    return {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [],
        "scheme": "http",
        "server": ("test", 80),
        "root_path": "",
        "http_version": "1.1",
    }


async def receive():
    return {"type": "http.request", "body": b"", "more_body": False}


def hanging_app(started: asyncio.Event, cancelled: asyncio.Event):
    async def app(scope, receive, send):
        started.set()
        try:
            await asyncio.sleep(SLOW_S)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    return app


async def test_handler_is_cancelled_on_timeout():
    started, cancelled = asyncio.Event(), asyncio.Event()
    sent = []

    async def send(message):
        sent.append(message)

    middleware = RequestTimeoutMiddleware(hanging_app(started, cancelled), timeout_s=0.05)
    await middleware(raw_scope(), receive, send)

    assert cancelled.is_set()
    assert sent[0]["type"] == "http.response.start"
    assert sent[0]["status"] == 503


async def test_outer_cancellation_reaches_the_handler():
    started, cancelled = asyncio.Event(), asyncio.Event()
    sent = []

    async def send(message):
        sent.append(message)

    middleware = RequestTimeoutMiddleware(hanging_app(started, cancelled), timeout_s=SLOW_S)
    outer = asyncio.create_task(middleware(raw_scope(), receive, send))
    await started.wait()

    outer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await outer

    await asyncio.wait_for(cancelled.wait(), 1)
    assert sent == []
