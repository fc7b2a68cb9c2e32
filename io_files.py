"""Solution text and layout preview files written after each run."""

from __future__ import annotations

import os
from typing import List, Optional

from config import CFG
from solver.stepper import PuzzleState


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def solution_lines(solver) -> List[str]:
    dims = solver.dimensions
    solved = solver.state is PuzzleState.SOLVED
    lines = [
        f"Board {dims.width} × {dims.height}: {solver.state.value}"
        f" after {solver.steps} steps, {solver.backtracks} backtracks"
    ]
    if not solved:
        lines.insert(0, "No solution")
    lines.append(str(solver.puzzle.board))
    for position, sq in enumerate(solver.board_squares()):
        if sq.is_empty:
            continue
        piece = solver.piece(sq.piece_id)
        x, y = position % dims.width, position // dims.width
        lines.append(
            f"piece {sq.piece_id} ({piece.color.value}) @ ({x},{y}) "
            f"rotations={piece.rotations % 4} flipped={'yes' if piece.flipped else 'no'} "
            f"edges={' '.join(str(c) for c in piece.connectors)}"
        )
    return lines


def write_solution(solver, base_dir: str) -> str:
    """Write the board grid and each placed piece's orientation to the configured text file."""

    path = _resolve_output_path(base_dir, CFG.SOLUTION_OUT, "solution.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(solution_lines(solver)) + "\n")
    return path


def write_layout_view_html(svg: str, legend_html: str, base_dir: str, grid_label: Optional[str] = None) -> str:
    """Standalone HTML copy of the board picture and piece legend."""

    path = _resolve_output_path(base_dir, CFG.LAYOUT_HTML, "layout_view.html")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    title = f"Layout View ({grid_label})" if grid_label else "Layout View"
    with open(path, "w", encoding="utf-8") as vf:
        vf.write(
            f"""<!doctype html>
<html><head><meta charset='utf-8'><title>{title}</title></head>
<body>
<h1>{title}</h1>
<section class='card'>{svg}</section>
<section class='card'><h3>Pieces</h3><ul>{legend_html}</ul></section>
</body></html>"""
        )
    return path


__all__ = ["solution_lines", "write_solution", "write_layout_view_html"]
