"""Core utilities shared by layout and panels"""

from panelgrid.core.ids import generate_group_id, generate_tab_id, make_id, short_id

__all__ = ["generate_group_id", "generate_tab_id", "make_id", "short_id"]
