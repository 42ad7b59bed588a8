"""
Atlas.

Lore atlas with an interactive, admin-editable world map.
"""

__version__ = "0.3.0"
