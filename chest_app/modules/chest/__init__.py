from .ui import chest_panel_ui
from .outputs import register_chest_outputs

__all__ = [
    'chest_panel_ui',
    'register_chest_outputs',
]
