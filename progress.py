from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------
# Shared run state for /progress
# ------------------------------

LOGS_DIR = Path(__file__).resolve().parent / "logs"
PROGRESS_LOCK = threading.Lock()

# Statuses a run can still leave; anything else was set on purpose and is kept.
_OPEN_STATUSES = ("", "Idle", "Progressing", "Backtrack", None)


def _state_path() -> Path:
    override = os.environ.get("PROGRESS_STATE_FILE")
    return Path(override) if override else LOGS_DIR / "progress_state.json"


STATE_FILE = _state_path()
_STATE_MTIME: float = 0.0


def _fresh_state(run_id: int = 0) -> Dict[str, Any]:
    return {
        "status": "Idle",          # Idle | Progressing | Backtrack | Solved | Unsolvable | Error
        "board": "",               # e.g. "3 × 3"
        "piece_set": "",           # yellow | green | both
        "steps": 0,
        "backtracks": 0,
        "placed": 0,               # pieces on the board now
        "size": 0,                 # squares on the board
        "position": 0,             # solver cursor
        "best_placed": 0,          # deepest fill seen this run
        "percent": 0.0,
        "elapsed_start": None,     # wall clock when the run started
        "elapsed": 0.0,
        "message": "",
        "done": False,
        "ok": None,
        "result_url": "",
        "run_id": run_id,
    }


PROGRESS: Dict[str, Any] = _fresh_state()
LOG_STATE: Dict[str, Any] = {"run_start": None, "status": "Idle"}


def _build_run_logger() -> logging.Logger:
    run_log = logging.getLogger("solver.run_log")
    if run_log.handlers:
        return run_log
    try:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(LOGS_DIR / "solver_runs.log", encoding="utf-8", delay=True)
    except OSError:
        # read-only checkout: run without the file log
        return run_log
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    ))
    run_log.addHandler(handler)
    run_log.setLevel(logging.INFO)
    run_log.propagate = False
    return run_log


RUN_LOGGER = _build_run_logger()


def _emit_log(event: str, **fields: Any) -> None:
    if not RUN_LOGGER.handlers:
        return
    parts = " ".join(f"{k}={v}" for k, v in fields.items() if v not in (None, ""))
    if parts:
        RUN_LOGGER.info("%s | %s", event, parts)
    else:
        RUN_LOGGER.info("%s", event)


# ------------------------------
# Persistence (lets a second worker serve /progress)
# ------------------------------

def _persist_locked() -> None:
    global _STATE_MTIME
    tmp = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(PROGRESS, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")
        tmp.replace(STATE_FILE)
        _STATE_MTIME = STATE_FILE.stat().st_mtime
    except OSError as e:
        _emit_log("Progress not persisted", error=e)


def _load_persisted_locked(force: bool = False) -> None:
    global _STATE_MTIME
    try:
        mtime = STATE_FILE.stat().st_mtime
        if not force and mtime <= _STATE_MTIME:
            return
        data = json.loads(STATE_FILE.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return
    if isinstance(data, dict):
        PROGRESS.update({k: v for k, v in data.items() if k in PROGRESS})
        _STATE_MTIME = mtime


def _log_status_transition_locked(new_status: str) -> None:
    previous = LOG_STATE.get("status") or ""
    if new_status != previous:
        LOG_STATE["status"] = new_status
        _emit_log("Status changed", board=PROGRESS.get("board"), previous=previous,
                  status=new_status, steps=PROGRESS.get("steps"))


def _touch_elapsed_locked() -> None:
    started = PROGRESS.get("elapsed_start")
    if started is not None:
        PROGRESS["elapsed"] = time.time() - float(started)


def fmt_elapsed(seconds: float) -> str:
    total = int(max(0.0, float(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _update(**fields: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS.update(fields)
        _persist_locked()


# ------------------------------
# Run lifecycle
# ------------------------------

def reset() -> None:
    with PROGRESS_LOCK:
        run_id = PROGRESS.get("run_id")
        PROGRESS.clear()
        PROGRESS.update(_fresh_state(run_id + 1 if isinstance(run_id, int) else 1))
        LOG_STATE.update(run_start=None, status="Idle")
        _emit_log("Progress reset", run_id=PROGRESS["run_id"])
        _persist_locked()


def start_timer() -> None:
    with PROGRESS_LOCK:
        LOG_STATE["run_start"] = PROGRESS["elapsed_start"] = time.time()
        PROGRESS["elapsed"] = 0.0
        _emit_log("Run started", board=PROGRESS.get("board"), piece_set=PROGRESS.get("piece_set"))
        _persist_locked()


def set_status(v: Any) -> None:
    status = "" if v is None else str(v)
    with PROGRESS_LOCK:
        PROGRESS["status"] = status
        _log_status_transition_locked(status)
        _persist_locked()


def set_board(width: Any, height: Any) -> None:
    try:
        w, h = int(width), int(height)
    except (TypeError, ValueError):
        _update(board="", size=0)
        return
    _update(board=f"{w} × {h}", size=max(0, w * h))


def set_piece_set(v: Any) -> None:
    _update(piece_set="" if v is None else str(getattr(v, "value", v)))


def set_message(msg: Any) -> None:
    _update(message="" if msg is None else str(msg))


def set_result_url(url: Any) -> None:
    _update(result_url="" if url is None else str(url))


def record_solver(solver: Any) -> None:
    """Copy the solver's counters and cursor into the progress state in one write."""
    size = solver.dimensions.size
    placed = solver.puzzle.placed_count()
    status = solver.state.value
    with PROGRESS_LOCK:
        PROGRESS.update(
            steps=solver.steps,
            backtracks=solver.backtracks,
            position=solver.position,
            size=size,
            placed=placed,
            best_placed=max(int(PROGRESS.get("best_placed") or 0), placed),
            percent=(100.0 * placed / size) if size else 0.0,
            status=status,
        )
        _log_status_transition_locked(status)
        _touch_elapsed_locked()
        _persist_locked()


def set_done(ok: Any = None, *, reason: Any = None, message: Any = None) -> None:
    """Mark the run complete.

    A status set by :func:`record_solver` (Solved / Unsolvable) or
    :func:`set_status` is kept.  A run still Idle, Progressing or Backtrack is
    closed as ``"Error"`` when ``ok`` is False and ``"Solved"`` otherwise.
    ``message`` (or ``reason``) replaces the message field.
    """
    note = message if message is not None else reason
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        if PROGRESS.get("status") in _OPEN_STATUSES:
            PROGRESS["status"] = "Error" if ok is not None and not ok else "Solved"
        ok_flag = PROGRESS["status"] == "Solved" if ok is None else bool(ok)
        _log_status_transition_locked(PROGRESS["status"])
        if ok_flag:
            PROGRESS["percent"] = 100.0
        if note is not None:
            PROGRESS["message"] = str(note)
        PROGRESS["done"] = True
        PROGRESS["ok"] = ok_flag

        started = LOG_STATE.get("run_start")
        LOG_STATE["run_start"] = None
        duration = f"{time.time() - started:.2f}s" if isinstance(started, (int, float)) else None
        _emit_log("Run finished", board=PROGRESS.get("board"), status=PROGRESS["status"],
                  ok=ok_flag, duration=duration, steps=PROGRESS.get("steps"),
                  backtracks=PROGRESS.get("backtracks"), message=PROGRESS.get("message"))
        _persist_locked()


# ------------------------------
# Snapshots for the UI
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        snap = dict(PROGRESS)
    snap.pop("elapsed_start", None)
    snap["elapsed_str"] = fmt_elapsed(snap.get("elapsed") or 0.0)
    return snap


def as_json() -> Dict[str, Any]:
    # Alias used by /progress
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
