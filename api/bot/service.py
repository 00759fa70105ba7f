"""
ICG-BOT companion operations.

The bot runs on the same host under `ICG_BOT_ROOT`; we only read its log and
drop a flag file that its supervisor watches to restart it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TAIL_LINES = 500
MAX_TAIL_LINES = 2000

RELOAD_FLAG_FILE = "reloadFlag.txt"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class BotOperationError(RuntimeError):
    pass


def parse_tail_lines(raw: str | None) -> int:
    # Leading digits only: "12abc" asks for 12 lines.
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return DEFAULT_TAIL_LINES
    lines = int(match.group(1))
    return lines if 0 < lines < MAX_TAIL_LINES else DEFAULT_TAIL_LINES


def run_log_path(root: str | Path) -> Path:
    return Path(root) / "logs" / "run.log"


async def tail_log(path: Path, lines: int) -> str:
    proc = await asyncio.create_subprocess_exec(
        "tail",
        "-n",
        str(lines),
        str(path),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        proc.kill()
        raise

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise BotOperationError(message or f"tail exited with status {proc.returncode}")
    return stdout.decode("utf-8", errors="replace")


def _write_reload_flag(path: Path) -> None:
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    path.write_text(f"Reload require by website.\n\nDate: {timestamp}", encoding="utf-8")


async def request_restart(root: str | Path) -> Path:
    path = Path(root) / RELOAD_FLAG_FILE
    try:
        await asyncio.to_thread(_write_reload_flag, path)
    except OSError as exc:
        raise BotOperationError(str(exc)) from exc
    logger.info("[ICG-BOT] Restart requested (%s)", path)
    return path
