"""
Dynamic handler registry.

A registry serves one namespace of pluggable handler modules (for example
`handlers.api`). Request names are normalized and validated, the matching
module is imported on first use, its optional `init()` runs once, and the
result is cached. Names that resolve to nothing are cached too, so a flood
of requests for an unknown name never touches the import system twice.

Handler module contract:

    def init() -> None | Awaitable[None]           # optional
    def deinit() -> None | Awaitable[None]         # optional
    def on_request(request) -> Response | Awaitable[Response]

`invalidate(name)` runs `deinit()` and forgets the module (including its
`sys.modules` entry) so the next request loads fresh code.
"""

from __future__ import annotations

import asyncio
import importlib
import importlib.util
import inspect
import logging
import pkgutil
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from fastapi import HTTPException, Request
from fastapi.responses import FileResponse, Response

logger = logging.getLogger(__name__)

DEFAULT_NAME_PATTERN = r"^[a-z\d-]+$"
JSON_NAME_PATTERN = r"^[a-z\d-]+(\.json)?$"

_SOURCE_SUFFIX = re.compile(r"\.(?:n?[tj]s|py)$")

RequestCallback = Callable[[Request], "Response | Awaitable[Response]"]
LifecycleCallback = Callable[[], "None | Awaitable[None]"]


class HandlerLoadError(RuntimeError):
    pass


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class Handler:
    name: str
    on_request: RequestCallback
    init: LifecycleCallback | None = None
    deinit: LifecycleCallback | None = None
    source_path: Path | None = None
    module_name: str | None = None

    async def handle(self, request: Request) -> Response:
        return await _maybe_await(self.on_request(request))


def _file_handler(name: str, path: Path, *, max_age: int = 86400) -> Handler:
    async def on_request(_: Request) -> Response:
        logger.debug("Send file %s (max_age=%d)", path, max_age)
        return FileResponse(path, headers={"Cache-Control": f"public, max-age={max_age}"})

    return Handler(name=name, on_request=on_request, source_path=path)


class HandlerRegistry:
    def __init__(
        self,
        package: str,
        *,
        name_pattern: str = DEFAULT_NAME_PATTERN,
        allow_json: bool = False,
    ) -> None:
        self.package = package
        self.allow_json = allow_json
        self._name_pattern = re.compile(name_pattern)
        self._handlers: dict[str, Handler | None] = {}
        self._loading: dict[str, asyncio.Lock] = {}

    def normalize(self, name: str) -> str:
        return _SOURCE_SUFFIX.sub("", name).lower()

    def is_valid_name(self, name: str) -> bool:
        return bool(self._name_pattern.match(name))

    def module_name(self, name: str) -> str:
        return f"{self.package}.{name.replace('-', '_')}"

    def _package_dir(self) -> Path:
        package = importlib.import_module(self.package)
        return Path(next(iter(package.__path__)))

    def _find(self, name: str) -> Handler | None:
        if name.endswith(".json"):
            if not self.allow_json:
                return None
            path = self._package_dir() / name
            return _file_handler(name, path) if path.is_file() else None

        module_name = self.module_name(name)
        if importlib.util.find_spec(module_name) is None:
            return None

        try:
            module = importlib.import_module(module_name)
        except Exception as exc:
            raise HandlerLoadError(f"Failed to import {module_name}.") from exc

        on_request = getattr(module, "on_request", None)
        if not callable(on_request):
            raise HandlerLoadError(f"{module_name} does not define on_request().")

        source = getattr(module, "__file__", None)
        return Handler(
            name=name,
            on_request=on_request,
            init=getattr(module, "init", None),
            deinit=getattr(module, "deinit", None),
            source_path=Path(source) if source else None,
            module_name=module_name,
        )

    async def load(self, name: str) -> Handler | None:
        """
        Return the cached handler for a normalized `name`, loading it if needed.

        Raises `HandlerLoadError` when the module exists but cannot be
        imported or initialized; nothing is cached in that case.
        """
        if name in self._handlers:
            return self._handlers[name]

        lock = self._loading.setdefault(name, asyncio.Lock())
        async with lock:
            if name in self._handlers:
                return self._handlers[name]

            handler = self._find(name)
            if handler is None:
                self._handlers[name] = None
                return None

            if handler.init is not None:
                try:
                    await _maybe_await(handler.init())
                except Exception as exc:
                    raise HandlerLoadError(f"{self.package}/{name}: init() failed.") from exc

            logger.info("[routing] Loaded %s/%s", self.package, name)
            self._handlers[name] = handler
            return handler

    async def dispatch(self, request: Request, name: str) -> Response:
        name = self.normalize(name)
        if not self.is_valid_name(name):
            raise HTTPException(status_code=403)

        try:
            handler = await self.load(name)
        except HandlerLoadError:
            logger.exception("[routing] Cannot load %s/%s", self.package, name)
            raise HTTPException(status_code=500)

        if handler is None:
            raise HTTPException(status_code=404)

        if "raw" in request.query_params and handler.source_path is not None:
            return FileResponse(handler.source_path, media_type="text/plain; charset=utf-8")

        try:
            return await handler.handle(request)
        except HTTPException:
            raise
        except Exception:
            logger.exception("[routing] %s/%s failed", self.package, name)
            raise HTTPException(status_code=500)

    async def invalidate(self, name: str) -> bool:
        name = self.normalize(name)
        self._loading.pop(name, None)
        if name not in self._handlers:
            return False

        handler = self._handlers.pop(name)
        if handler is None:
            return True

        if handler.deinit is not None:
            try:
                await _maybe_await(handler.deinit())
            except Exception:
                logger.exception("[routing] %s/%s: deinit() failed", self.package, name)

        if handler.module_name:
            sys.modules.pop(handler.module_name, None)
            importlib.invalidate_caches()
        logger.info("[routing] Invalidated %s/%s", self.package, name)
        return True

    async def close(self) -> None:
        for name in list(self._handlers):
            await self.invalidate(name)

    def loaded(self) -> list[str]:
        return sorted(name for name, handler in self._handlers.items() if handler is not None)

    def available(self) -> list[str]:
        package_dir = self._package_dir()
        names = [
            info.name.replace("_", "-")
            for info in pkgutil.iter_modules([str(package_dir)])
            if not info.name.startswith("_")
        ]
        if self.allow_json:
            names.extend(p.name for p in package_dir.glob("*.json"))
        return sorted(n for n in names if self.is_valid_name(n))
