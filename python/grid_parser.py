"""
Text format for direction grids.

Used to write fixtures compactly and to dump a grid for inspection.
"""

from __future__ import annotations

from grid_types import DIRECTION_COUNT, Cell, DirectionGrid

__all__ = ["parse_direction_grid", "format_direction_grid"]


def parse_direction_grid(definition: str) -> DirectionGrid:
    """
    Parse a direction grid from a compact string format.

    Format:
    - Rows separated by |
    - Cells separated by whitespace
    - Each cell is either:
      * A digit 0-7: the cell's direction code
      * Underscore (_): unassigned cell

    Example:
        "2 4 _|0 6 6"
        Creates a 3x2 grid where Cell(0, 0) holds 2, Cell(2, 0) is unassigned
        and Cell(2, 1) holds 6.

    Args:
        definition: The grid string

    Returns:
        The parsed DirectionGrid
    """
    row_strings = [row.strip() for row in definition.strip().split("|")]
    if not row_strings or not row_strings[0]:
        raise ValueError("Empty grid definition: expected at least one row with one cell")

    rows: list[list[int | None]] = []
    for row_idx, row_str in enumerate(row_strings):
        codes: list[int | None] = []
        for col_idx, cell_str in enumerate(row_str.split()):
            if cell_str == "_":
                codes.append(None)
            elif cell_str.isdigit() and int(cell_str) < DIRECTION_COUNT:
                codes.append(int(cell_str))
            else:
                # Provide detailed error information
                error_msg = (
                    f"Invalid cell string: '{cell_str}'\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid formats:\n"
                    f"    - Digit 0-{DIRECTION_COUNT - 1}: direction code\n"
                    f"    - '_': unassigned cell"
                )
                raise ValueError(error_msg)
        rows.append(codes)

    # Validate all rows have same length
    cols = len(rows[0])
    mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != cols]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths\n"
            f"  Expected: {cols} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual_cols in mismatched:
            error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx]}\"\n"
        error_msg += "  All rows must have the same number of cells"
        raise ValueError(error_msg)

    grid = DirectionGrid(cols, len(rows))
    for y, codes in enumerate(rows):
        for x, code in enumerate(codes):
            grid.set(Cell(x, y), code)
    return grid


def format_direction_grid(grid: DirectionGrid) -> str:
    """Format a grid in the same layout parse_direction_grid reads."""
    return "|".join(
        " ".join("_" if code is None else str(code) for code in row) for row in grid.cells
    )
