from models import BOARD_SIZE, GameState, Tile

B = "B"  # Marks a blocker cell in board layouts


def make_board(rows):
    """
    Builds a board from a layout of values. Missing rows and cells are empty;
    None or 0 is an empty cell and B is a blocker.
    """
    grid = []
    for r in range(BOARD_SIZE):
        row = list(rows[r]) if r < len(rows) else []
        row += [None] * (BOARD_SIZE - len(row))
        cells = []
        for c, value in enumerate(row):
            if value is None or value == 0:
                cells.append(None)
            elif value == B:
                cells.append(Tile.blocker(r, c).reset_flags())
            else:
                cells.append(Tile.with_value(value, r, c).reset_flags())
        grid.append(tuple(cells))
    return tuple(grid)


def make_state(rows, **kwargs):
    return GameState(board=make_board(rows), **kwargs)


def values(board):
    """The board as a grid of values, with B for blockers and None for empty cells."""
    return [
        [None if tile is None else (B if tile.is_blocker else tile.value) for tile in row]
        for row in board
    ]


def tile_count(board):
    return sum(1 for row in board for tile in row if tile is not None)


def checkerboard(low=2, high=4):
    """A full board in which no two neighbours are equal."""
    return [[low if (r + c) % 2 == 0 else high for c in range(BOARD_SIZE)] for r in range(BOARD_SIZE)]
