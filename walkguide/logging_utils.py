"""Lightweight structured logging helpers."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from .config import GuideConfig

LOGGER = logging.getLogger("walkguide.events")


def ensure_log_dir(path: str) -> None:
    Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def append_event(path: str, event: dict, *, max_bytes: int) -> None:
    ensure_log_dir(path)
    target = Path(path).expanduser()
    if target.exists() and target.stat().st_size > max_bytes:
        rotated = target.with_name(f"{target.stem}-{int(time.time())}{target.suffix}")
        target.rename(rotated)
    with target.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(event, ensure_ascii=False) + "\n")


def build_log_event(
    *,
    cfg: GuideConfig,
    kind: str,
    state: str,
    backend: str | None = None,
    mode: str | None = None,
    urgent: bool | None = None,
    spoken: bool | None = None,
    latency_ms: int | None = None,
    error: str | None = None,
    text_preview: str = "",
    extra: dict[str, object] | None = None,
) -> dict:
    event = {
        "ts": time.time(),
        "kind": kind,
        "state": state,
        "backend": backend,
        "mode": mode,
        "urgent": urgent,
        "spoken": spoken,
        "latency_ms": latency_ms,
        "error": error,
        "text_preview": text_preview[:60],
        "locale": cfg.locale,
    }
    if extra:
        event.update(extra)
    return event


def record_event(cfg: GuideConfig, **fields: object) -> None:
    """Append an event to the configured JSON-lines log, if any.

    Write failures are logged and dropped; the event log never interrupts
    the interaction loop.
    """

    if not cfg.event_log_path:
        return
    try:
        append_event(
            cfg.event_log_path,
            build_log_event(cfg=cfg, **fields),  # type: ignore[arg-type]
            max_bytes=cfg.event_log_max_bytes,
        )
    except OSError as exc:
        LOGGER.warning("Could not write event log %s: %s", cfg.event_log_path, exc)


__all__ = ["append_event", "ensure_log_dir", "build_log_event", "record_event"]
