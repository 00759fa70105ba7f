"""
ICG-BOT endpoints. Only mounted when `ICG_BOT_ROOT` is configured.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse, PlainTextResponse, Response

from core import config, responses

from . import service

router = APIRouter(prefix="/ICG-BOT")

REPOSITORY_URL = "https://github.com/WPAFC-zhwiki/ICG-BOT"


def _root() -> str:
    root = config.icg_bot_root()
    if not root:
        raise HTTPException(status_code=404)
    return root


@router.get("")
async def repository() -> Response:
    return responses.moved_permanently(REPOSITORY_URL)


@router.get("/run.log")
@router.get("/out.njs")
async def run_log(lines: str | None = Query(default=None)) -> Response:
    path = service.run_log_path(_root())
    try:
        text = await service.tail_log(path, service.parse_tail_lines(lines))
    except service.BotOperationError as exc:
        return PlainTextResponse(str(exc), status_code=500)

    return PlainTextResponse(
        text,
        headers={
            "Cache-Control": "no-cache",
            "Content-Disposition": "inline",
        },
    )


@router.get("/err.log")
async def err_log() -> Response:
    err_log_path = config.icg_bot_err_log()
    if not err_log_path or not Path(err_log_path).is_file():
        raise HTTPException(status_code=404)
    return FileResponse(
        err_log_path,
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "Content-Disposition": "inline"},
    )


@router.get("/restart")
async def restart() -> Response:
    try:
        await service.request_restart(_root())
    except service.BotOperationError as exc:
        return PlainTextResponse(str(exc), status_code=500)
    return PlainTextResponse("Success.")
