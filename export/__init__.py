"""Export-Modul: Terminal-Tabellen (Rich) für die CLI."""

from export.tui_renderer import (
    build_table,
    occupancy_label,
    render_group_rows,
    render_history_rows,
    render_subject_rows,
)

__all__ = [
    "build_table",
    "occupancy_label",
    "render_group_rows",
    "render_history_rows",
    "render_subject_rows",
]
