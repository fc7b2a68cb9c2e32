from typing import Dict, List, Tuple

from config import CFG
from models import Color, Connector, ConnectorGender, ConnectorOffset, ConnectorSize, Direction

PALETTE: Dict[Color, str] = {
    Color.YELLOW: "rgb(242,199,68)",
    Color.GREEN: "rgb(108,191,90)",
}
EMPTY_FILL = "rgb(230,230,230)"

# outward normal per side; "left" is normal rotated so it points left when looking outward
_NORMALS: Dict[Direction, Tuple[int, int]] = {
    Direction.LEFT: (-1, 0),
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
}


def _fmt_points(points: List[Tuple[float, float]]) -> str:
    return " ".join(f"{x:.1f},{y:.1f}" for x, y in points)


def _connector_svg(conn: Connector, direction: Direction, x0: float, y0: float, s: float, fill: str) -> str:
    if conn.is_flat:
        return ""
    nx, ny = _NORMALS[direction]
    lx, ly = ny, -nx
    mx = x0 + s / 2 + nx * s / 2
    my = y0 + s / 2 + ny * s / 2

    large = conn.size is ConnectorSize.LARGE
    half = s * (0.14 if large else 0.08)
    depth = s * (0.16 if large else 0.10)
    side = 1 if conn.offset is ConnectorOffset.LEFT else -1
    bx = mx + lx * s * 0.18 * side
    by = my + ly * s * 0.18 * side
    out = 1 if conn.gender is ConnectorGender.MALE else -1

    points = [
        (bx + lx * half, by + ly * half),
        (bx + nx * depth * out, by + ny * depth * out),
        (bx - lx * half, by - ly * half),
    ]
    tab_fill = fill if out > 0 else "white"
    return f'<polygon points="{_fmt_points(points)}" fill="{tab_fill}" stroke="black" stroke-width="1"/>'


def render_board(solver) -> Tuple[str, str]:
    """Return (svg, legend_html) for the solver's current board and piece pool."""
    scale = CFG.CELL_PX
    margin = scale * 0.2
    dims = solver.dimensions
    svg_w = int(dims.width * scale + 2 * margin)
    svg_h = int(dims.height * scale + 2 * margin)

    cells = []
    tabs = []
    for position, sq in enumerate(solver.board_squares()):
        x, y = position % dims.width, position // dims.width
        x0 = margin + x * scale
        y0 = margin + y * scale
        if sq.is_empty:
            cells.append(
                f'<rect x="{x0:.1f}" y="{y0:.1f}" width="{scale}" height="{scale}" '
                f'fill="{EMPTY_FILL}" stroke="gray" stroke-width="1"/>'
            )
            continue
        piece = solver.piece(sq.piece_id)
        fill = PALETTE.get(piece.color, EMPTY_FILL)
        orient = f"r{piece.rotations % 4}" + (" F" if piece.flipped else "")
        cells.append(
            f'<rect x="{x0:.1f}" y="{y0:.1f}" width="{scale}" height="{scale}" '
            f'fill="{fill}" stroke="black" stroke-width="1"/>'
            f'<text x="{x0 + scale / 2:.1f}" y="{y0 + scale / 2:.1f}" font-size="{int(scale * 0.22)}" '
            f'text-anchor="middle" fill="black">{sq.piece_id}</text>'
            f'<text x="{x0 + scale / 2:.1f}" y="{y0 + scale * 0.72:.1f}" font-size="{int(scale * 0.14)}" '
            f'text-anchor="middle" fill="black">{orient}</text>'
        )
        for direction in Direction:
            tabs.append(_connector_svg(piece.connector(direction), direction, x0, y0, scale, fill))

    frame = (
        f'<rect x="{margin - 1:.1f}" y="{margin - 1:.1f}" width="{dims.width * scale + 2}" '
        f'height="{dims.height * scale + 2}" fill="none" stroke="black" stroke-width="2"/>'
    )
    svg = (
        f'<svg class="board-svg" xmlns="http://www.w3.org/2000/svg" '
        f'width="{svg_w}" height="{svg_h}" '
        f'viewBox="0 0 {svg_w} {svg_h}" preserveAspectRatio="xMinYMin meet">'
        f'{"".join(cells)}{"".join(tabs)}{frame}</svg>'
    )

    legend = "".join(
        f"<li class='{'used' if p.used else 'free'}'>"
        f"<span class='swatch' style='background:{PALETTE.get(p.color, EMPTY_FILL)}'></span>"
        f"#{pid} {p.color.value} ({'on board' if p.used else 'free'})</li>"
        for pid, p in enumerate(solver.pieces())
    )
    return svg, legend
