# config.py
import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ======= Board / form defaults =======
DEFAULT_WIDTH  = int(os.getenv("PZ_DEFAULT_WIDTH", "3"))
DEFAULT_HEIGHT = int(os.getenv("PZ_DEFAULT_HEIGHT", "3"))

# The physical puzzle tray holds at most 5 × 5 pieces.
MIN_DIM = int(os.getenv("PZ_MIN_DIM", "2"))
MAX_DIM = int(os.getenv("PZ_MAX_DIM", "5"))

# ======= Piece sets =======
DEFAULT_PIECE_SET = os.getenv("PZ_DEFAULT_PIECE_SET", "yellow")
PIECES_FILE       = os.getenv("PZ_PIECES_FILE", os.path.join(BASE_DIR, "data", "pieces.json"))

# ======= Step budgets =======
# Run-to-completion gives up after this many steps; <= 0 means unbounded.
MAX_STEPS      = int(os.getenv("PZ_MAX_STEPS", "2000000"))
STEP_BATCH     = int(os.getenv("PZ_STEP_BATCH", "1"))
MAX_STEP_BATCH = int(os.getenv("PZ_MAX_STEP_BATCH", "10000"))

# ======= Presentation =======
STEP_INTERVAL_MS = int(os.getenv("PZ_STEP_INTERVAL_MS", "200"))
CELL_PX          = int(os.getenv("PZ_CELL_PX", "80"))

# ======= Output names =======
SOLUTION_OUT = os.getenv("PZ_SOLUTION_OUT", "solution.txt")
LAYOUT_HTML  = os.getenv("PZ_LAYOUT_HTML", "layout_view.html")

# ======= Logging =======
LOG_LEVEL = os.getenv("PZ_LOG_LEVEL", "INFO").upper()

class CFG:
    BASE_DIR = BASE_DIR

    DEFAULT_WIDTH  = DEFAULT_WIDTH
    DEFAULT_HEIGHT = DEFAULT_HEIGHT
    MIN_DIM        = MIN_DIM
    MAX_DIM        = MAX_DIM

    DEFAULT_PIECE_SET = DEFAULT_PIECE_SET
    PIECES_FILE       = PIECES_FILE

    MAX_STEPS      = MAX_STEPS
    STEP_BATCH     = STEP_BATCH
    MAX_STEP_BATCH = MAX_STEP_BATCH

    STEP_INTERVAL_MS = STEP_INTERVAL_MS
    CELL_PX          = CELL_PX

    SOLUTION_OUT = SOLUTION_OUT
    LAYOUT_HTML  = LAYOUT_HTML

    LOG_LEVEL = LOG_LEVEL

__all__ = ["CFG", "BASE_DIR"]
