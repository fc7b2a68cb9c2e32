# app.py: board view, run-to-completion and step-by-step solving
from __future__ import annotations
import logging
import os
import time
import threading
from typing import Any, Dict, Optional, Tuple

from flask import Flask, request, render_template, send_from_directory, jsonify, url_for

from config import CFG
from io_files import solution_lines, write_solution, write_layout_view_html
from pieceset import PieceSet, PieceSetError, bundled_pieces
from render import render_board
from solver.puzzle import Dimensions, PuzzleBuilder
from solver.stepper import PuzzleState, Solver

from progress import (
    reset as progress_reset,
    as_json as progress_json,
    start_timer as progress_start,
    set_status, set_board, set_piece_set, record_solver,
    set_done, set_result_url, fmt_elapsed,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

logger = logging.getLogger(__name__)


def _resolve_output_paths(configured: str, fallback: str) -> Tuple[str, str, str]:
    name = (configured or "").strip() or fallback
    if os.path.isabs(name):
        full_path = name
    else:
        full_path = os.path.abspath(os.path.join(BASE_DIR, name))
    directory = os.path.dirname(full_path) or BASE_DIR
    filename = os.path.basename(full_path) or fallback
    return full_path, directory, filename


_SOLUTION_FULL_PATH, SOLUTION_DIR, SOLUTION_FILENAME = _resolve_output_paths(
    CFG.SOLUTION_OUT, "solution.txt"
)
_LAYOUT_FULL_PATH, LAYOUT_DIR, LAYOUT_FILENAME = _resolve_output_paths(
    CFG.LAYOUT_HTML, "layout_view.html"
)

LAST_RESULT: Dict[str, Any] = {
    "ok": False,
    "status": "Idle",
    "message": "",
    "width": 0,
    "height": 0,
    "piece_set": "",
    "placed_count": 0,
    "size": 0,
    "piece_count": 0,
    "steps": 0,
    "backtracks": 0,
    "elapsed_str": "0s",
    "svg": "",
    "legend": "",
    "solution_text": "",
    "animate": False,
    "step_interval_ms": CFG.STEP_INTERVAL_MS,
    "step_batch": CFG.STEP_BATCH,
    "solution_filename": SOLUTION_FILENAME,
    "layout_filename": LAYOUT_FILENAME,
}

# One active solve at a time; every step goes through SESSION_LOCK.
SESSION_LOCK = threading.Lock()
SESSION: Dict[str, Any] = {
    "solver": None,
    "t0": 0.0,
    "finished": False,
}

app = Flask(__name__, template_folder="templates")


@app.after_request
def _no_cache_progress(resp):
    if request.path in ("/progress", "/step", "/board"):
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


def _merge_like_mapping() -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        merged.update(payload)

    for k, v in request.form.to_dict(flat=False).items():
        merged.setdefault(k, v)

    for k, v in request.args.to_dict(flat=False).items():
        merged.setdefault(k, v)

    return merged


def _first(like: Dict[str, Any], key: str) -> Any:
    value = like.get(key)
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _parse_dim(like: Dict[str, Any], key: str, default: int) -> Tuple[Optional[int], Optional[str]]:
    raw = _first(like, key)
    if raw is None or str(raw).strip() == "":
        return default, None
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None, f"{key} must be a whole number, got {raw!r}"
    if not CFG.MIN_DIM <= value <= CFG.MAX_DIM:
        return None, f"{key} must be between {CFG.MIN_DIM} and {CFG.MAX_DIM}, got {value}"
    return value, None


def _parse_solve_request(like: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
    """Return ({width, height, piece_set, mode}, error_message_or_None)."""
    width, err = _parse_dim(like, "width", CFG.DEFAULT_WIDTH)
    if err:
        return {}, err
    height, err = _parse_dim(like, "height", CFG.DEFAULT_HEIGHT)
    if err:
        return {}, err
    try:
        piece_set = PieceSet.coerce(_first(like, "piece_set") or CFG.DEFAULT_PIECE_SET)
    except PieceSetError as e:
        return {}, str(e)
    mode = str(_first(like, "mode") or "run").strip().lower()
    if mode not in ("run", "animate"):
        return {}, f"mode must be 'run' or 'animate', got {mode!r}"
    return {"width": width, "height": height, "piece_set": piece_set, "mode": mode}, None


def _parse_step_count(like: Dict[str, Any]) -> Tuple[Optional[int], Optional[str]]:
    raw = _first(like, "steps")
    if raw is None or str(raw).strip() == "":
        return max(1, CFG.STEP_BATCH), None
    try:
        n = int(raw)
    except (TypeError, ValueError, OverflowError):
        return None, f"steps must be a whole number, got {raw!r}"
    if n < 1:
        return None, "steps must be at least 1"
    return min(n, CFG.MAX_STEP_BATCH), None


def _build_solver(width: int, height: int, piece_set: PieceSet) -> Solver:
    puzzle = (
        PuzzleBuilder()
        .with_dimensions(Dimensions(width, height))
        .with_pieces(bundled_pieces())
        .with_piece_set(piece_set)
        .build()
    )
    return Solver(puzzle)


def _board_payload(solver: Solver, *, with_svg: bool = True) -> Dict[str, Any]:
    dims = solver.dimensions
    out: Dict[str, Any] = {
        "width": dims.width,
        "height": dims.height,
        "state": solver.state.value,
        "terminal": solver.state.is_terminal,
        "position": solver.position,
        "steps": solver.steps,
        "backtracks": solver.backtracks,
        "placements": solver.placements,
        "squares": [sq.piece_id for sq in solver.board_squares()],
        "pieces": [p.to_dict() for p in solver.pieces()],
    }
    if with_svg:
        out["svg"], out["legend"] = render_board(solver)
    return out


def _outcome_message(solver: Solver) -> str:
    if solver.state is PuzzleState.SOLVED:
        return f"Solved in {solver.steps} steps ({solver.backtracks} backtracks)"
    if solver.state is PuzzleState.UNSOLVABLE:
        return (
            f"Unsolvable: no arrangement of the {len(solver.puzzle.pieces)} pieces "
            f"fills the board ({solver.steps} steps)"
        )
    return f"Stopped after {solver.steps} steps (step budget reached)"


def _write_outputs(solver: Solver, svg: str, legend: str) -> Tuple[str, str]:
    dims = solver.dimensions
    solution_name = SOLUTION_FILENAME
    layout_name = LAYOUT_FILENAME
    try:
        solution_name = os.path.basename(write_solution(solver, BASE_DIR)) or SOLUTION_FILENAME
    except OSError as e:
        logger.warning("Could not write solution file: %s", e)
    try:
        layout_path = write_layout_view_html(
            svg, legend, BASE_DIR, grid_label=f"{dims.width} × {dims.height}"
        )
        layout_name = os.path.basename(layout_path) or LAYOUT_FILENAME
    except OSError as e:
        logger.warning("Could not write layout view: %s", e)
    return solution_name, layout_name


def _finish_run(solver: Solver, t0: float) -> Dict[str, Any]:
    ok_flag = solver.state is PuzzleState.SOLVED
    message = _outcome_message(solver)
    record_solver(solver)
    set_done(ok_flag, reason=message)

    svg, legend = render_board(solver)
    solution_name, layout_name = _write_outputs(solver, svg, legend)
    _update_last_result(solver, t0, svg=svg, legend=legend, message=message, animate=False)
    LAST_RESULT.update({
        "ok": ok_flag,
        "solution_filename": solution_name,
        "layout_filename": layout_name,
    })
    set_result_url(url_for("result_latest"))
    return LAST_RESULT


def _update_last_result(solver: Solver, t0: float, **extra: Any) -> None:
    dims = solver.dimensions
    LAST_RESULT.update({
        "ok": solver.state is PuzzleState.SOLVED,
        "status": solver.state.value,
        "width": dims.width,
        "height": dims.height,
        "placed_count": solver.puzzle.placed_count(),
        "size": dims.size,
        "piece_count": len(solver.puzzle.pieces),
        "steps": solver.steps,
        "backtracks": solver.backtracks,
        "elapsed_str": fmt_elapsed(time.time() - t0),
        "solution_text": "\n".join(solution_lines(solver)),
    })
    LAST_RESULT.update(extra)


def _fail(reason: str, t0: float, **fields: Any) -> str:
    set_status("Error")
    set_done(False, reason=reason)
    LAST_RESULT.update({
        "ok": False,
        "status": "Error",
        "message": reason,
        "placed_count": 0,
        "size": 0,
        "piece_count": 0,
        "steps": 0,
        "backtracks": 0,
        "elapsed_str": fmt_elapsed(time.time() - t0),
        "svg": "",
        "legend": "",
        "solution_text": "",
        "animate": False,
    })
    LAST_RESULT.update(fields)
    set_result_url(url_for("result_latest"))
    return render_template("result.html", **LAST_RESULT)


@app.route("/")
def index():
    return render_template(
        "index.html",
        default_width=CFG.DEFAULT_WIDTH,
        default_height=CFG.DEFAULT_HEIGHT,
        default_piece_set=CFG.DEFAULT_PIECE_SET,
        min_dim=CFG.MIN_DIM,
        max_dim=CFG.MAX_DIM,
        piece_sets=[p.value for p in PieceSet],
    )


@app.route("/result/latest")
def result_latest():
    return render_template("result.html", **LAST_RESULT)


@app.route("/solve", methods=["POST"])
def solve():
    progress_reset()
    t0 = time.time()

    like = _merge_like_mapping()
    params, err = _parse_solve_request(like)
    if err:
        seen_keys = ", ".join(list(like.keys())[:8]) or "none"
        return _fail(f"Bad request: {err} (saw keys: {seen_keys})", t0, width=0, height=0, piece_set="")

    width, height, piece_set = params["width"], params["height"], params["piece_set"]
    set_board(width, height)
    set_piece_set(piece_set)
    progress_start()

    try:
        solver = _build_solver(width, height, piece_set)
    except (PieceSetError, ValueError) as e:
        reason = f"piece set error: {type(e).__name__}: {e}"
        return _fail(reason, t0, width=width, height=height, piece_set=piece_set.value)

    logger.info("Starting %s solve with width %d and height %d (%s pieces)", params["mode"], width, height, piece_set.value)
    set_status("Progressing")
    LAST_RESULT.update({
        "piece_set": piece_set.value,
        "step_interval_ms": CFG.STEP_INTERVAL_MS,
        "step_batch": max(1, CFG.STEP_BATCH),
    })

    with SESSION_LOCK:
        SESSION.update({"solver": solver, "t0": t0, "finished": False})
        if params["mode"] == "animate":
            record_solver(solver)
            svg, legend = render_board(solver)
            _update_last_result(solver, t0, svg=svg, legend=legend, message="Stepping...", animate=True)
            return render_template("result.html", **LAST_RESULT)

        max_steps = CFG.MAX_STEPS if CFG.MAX_STEPS > 0 else None
        solver.run(max_steps)
        SESSION["finished"] = True
        result = _finish_run(solver, t0)
    return render_template("result.html", **result)


@app.route("/step", methods=["POST"])
def step():
    like = _merge_like_mapping()
    n, err = _parse_step_count(like)
    if err:
        return jsonify({"error": err}), 400

    with SESSION_LOCK:
        solver: Optional[Solver] = SESSION.get("solver")
        if solver is None:
            return jsonify({"error": "no active solve; POST /solve first"}), 409
        state = solver.run(n)
        record_solver(solver)
        if state.is_terminal and not SESSION.get("finished"):
            SESSION["finished"] = True
            _finish_run(solver, float(SESSION.get("t0") or time.time()))
        payload = _board_payload(solver)
        payload["message"] = _outcome_message(solver) if state.is_terminal else ""
    return jsonify(payload)


@app.route("/board")
def board():
    with SESSION_LOCK:
        solver: Optional[Solver] = SESSION.get("solver")
        if solver is None:
            return jsonify({"error": "no active solve"}), 409
        return jsonify(_board_payload(solver, with_svg=False))


@app.route("/download/solution")
def download_solution():
    return send_from_directory(SOLUTION_DIR, SOLUTION_FILENAME, as_attachment=True)


@app.route("/download/html")
def download_html():
    return send_from_directory(LAYOUT_DIR, LAYOUT_FILENAME, as_attachment=True)


@app.route("/progress")
def progress():
    return jsonify(progress_json())


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, CFG.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


if __name__ == "__main__":
    _configure_logging()
    app.run(debug=False)
