from .ui import history_panel_ui, tier_info_ui
from .outputs import register_history_outputs

__all__ = [
    'history_panel_ui',
    'tier_info_ui',
    'register_history_outputs',
]
