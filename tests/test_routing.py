from __future__ import annotations

import asyncio
import sys
import textwrap
import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.routing import JSON_NAME_PATTERN, HandlerLoadError, HandlerRegistry

HELLO = """
from fastapi.responses import PlainTextResponse

CALLS = {"init": 0, "deinit": 0}


def init():
    CALLS["init"] += 1


def deinit():
    CALLS["deinit"] += 1


def on_request(request):
    return PlainTextResponse("hello " + request.query_params.get("who", "world"))
"""

SLOW_INIT = """
import asyncio

from fastapi.responses import PlainTextResponse

CALLS = {"init": 0}


async def init():
    CALLS["init"] += 1
    await asyncio.sleep(0.01)


async def on_request(request):
    return PlainTextResponse("slow")
"""

BROKEN_INIT = """
def init():
    raise RuntimeError("no wiki today")


def on_request(request):
    return None
"""

RAISES = """
from fastapi import HTTPException


def on_request(request):
    if request.query_params.get("teapot"):
        raise HTTPException(status_code=418)
    raise RuntimeError("handler bug")
"""

NO_ENTRYPOINT = """
VALUE = 1
"""


@pytest.fixture
def handler_package(tmp_path, monkeypatch):
    name = f"fake_handlers_{uuid.uuid4().hex[:8]}"
    package_dir = tmp_path / name
    package_dir.mkdir()
    (package_dir / "__init__.py").write_text("")
    files = {
        "hello.py": HELLO,
        "two_words.py": HELLO,
        "slow_init.py": SLOW_INIT,
        "broken_init.py": BROKEN_INIT,
        "raises.py": RAISES,
        "no_entrypoint.py": NO_ENTRYPOINT,
        "_private.py": HELLO,
    }
    for filename, source in files.items():
        (package_dir / filename).write_text(textwrap.dedent(source), encoding="utf-8")
    (package_dir / "sample.json").write_text('{"ok": true}', encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    yield name
    for module_name in [m for m in sys.modules if m == name or m.startswith(name + ".")]:
        del sys.modules[module_name]


@pytest.fixture
def registry(handler_package) -> HandlerRegistry:
    return HandlerRegistry(handler_package, name_pattern=JSON_NAME_PATTERN, allow_json=True)


@pytest.fixture
def http(registry) -> TestClient:
    app = FastAPI()

    @app.api_route("/h/{name}", methods=["GET", "POST"])
    async def dispatch(request: Request, name: str):
        return await registry.dispatch(request, name)

    return TestClient(app)


def test_handler_is_loaded_once_and_reused(http, registry, handler_package):
    assert http.get("/h/hello").text == "hello world"
    assert http.get("/h/hello", params={"who": "afc"}).text == "hello afc"

    module = sys.modules[f"{handler_package}.hello"]
    assert module.CALLS["init"] == 1
    assert registry.loaded() == ["hello"]


def test_hyphenated_names_map_to_underscored_modules(http):
    assert http.get("/h/two-words").text == "hello world"


def test_source_suffix_is_stripped_and_name_lowercased(http, registry):
    assert http.get("/h/HELLO.ts").status_code == 200
    assert http.get("/h/hello.py").status_code == 200
    assert registry.loaded() == ["hello"]


def test_invalid_name_is_forbidden(http):
    assert http.get("/h/two_words").status_code == 403
    assert http.get("/h/hello.txt").status_code == 403


def test_unknown_name_is_cached_as_absent(http, registry, monkeypatch):
    assert http.get("/h/missing").status_code == 404
    assert registry._handlers["missing"] is None

    def explode(name):
        raise AssertionError("lookup should be cached")

    monkeypatch.setattr(registry, "_find", explode)
    assert http.get("/h/missing").status_code == 404


def test_failed_init_is_not_cached(http, registry):
    assert http.get("/h/broken-init").status_code == 500
    assert "broken-init" not in registry._handlers


def test_module_without_entrypoint_fails_to_load(registry):
    with pytest.raises(HandlerLoadError):
        asyncio.run(registry.load("no-entrypoint"))


def test_handler_errors_become_500_but_http_errors_pass_through(http):
    assert http.get("/h/raises").status_code == 500
    assert http.get("/h/raises", params={"teapot": "1"}).status_code == 418


def test_raw_serves_handler_source(http):
    response = http.get("/h/hello", params={"raw": "1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "def on_request" in response.text


def test_json_files_are_served(http):
    response = http.get("/h/sample.json")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_json_files_need_allow_json(handler_package):
    registry = HandlerRegistry(handler_package)
    assert not registry.is_valid_name("sample.json")


async def test_concurrent_first_requests_init_once(registry, handler_package):
    handlers = await asyncio.gather(*(registry.load("slow-init") for _ in range(4)))

    assert all(h is handlers[0] for h in handlers)
    assert sys.modules[f"{handler_package}.slow_init"].CALLS["init"] == 1


async def test_invalidate_runs_deinit_and_forgets_module(registry, handler_package):
    module_name = f"{handler_package}.hello"
    await registry.load("hello")
    module = sys.modules[module_name]

    assert await registry.invalidate("hello") is True

    assert module.CALLS["deinit"] == 1
    assert module_name not in sys.modules
    assert registry.loaded() == []
    assert await registry.invalidate("hello") is False

    reloaded = await registry.load("hello")
    assert reloaded is not None
    assert sys.modules[module_name] is not module


async def test_close_invalidates_everything(registry):
    await registry.load("hello")
    await registry.load("two-words")
    await registry.load("missing")

    await registry.close()

    assert registry._handlers == {}


def test_available_lists_public_handlers_and_json(registry):
    assert registry.available() == [
        "broken-init",
        "hello",
        "no-entrypoint",
        "raises",
        "sample.json",
        "slow-init",
        "two-words",
    ]
