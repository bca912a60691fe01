from datetime import datetime
from typing import List, Literal, Optional, Union


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of values (converted with str).
        aligns: 'l', 'c' or 'r' per column. Defaults to all center.

    Returns:
        str: Markdown formatted table, or "" when there are no rows.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [_cell(h) for h in headers]
    rows = [[_cell(c) for c in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}

    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines += ["| " + " | ".join(row) + " |" for row in rows]
    return "\n".join(lines)


def _cell(value) -> str:
    # pipes would split the cell
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_date(value: Union[str, datetime, None]) -> str:
    """'March 5, 2025' style date; '-' when missing."""
    if value is None:
        return "-"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return f"{value:%B} {value.day}, {value.year}"


def truncate(text: str, length: int) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."


def stars(rating: float, out_of: int = 5) -> str:
    full = int(round(rating))
    return "★" * full + "☆" * (out_of - full)
