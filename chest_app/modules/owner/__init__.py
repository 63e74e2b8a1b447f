from .ui import owner_panel_ui
from .outputs import register_owner_outputs

__all__ = [
    'owner_panel_ui',
    'register_owner_outputs',
]
