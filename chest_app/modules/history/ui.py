from shiny import ui

from ...config.chest_config import ALL_TIERS, PRIZE_TIERS


def history_panel_ui():
    """Recent treasures: tier filter, paginated table, page controls"""
    tier_choices = {ALL_TIERS: f"🎯 {ALL_TIERS}"}
    for tier in reversed(PRIZE_TIERS):
        tier_choices[tier["name"]] = f"{tier['emoji']} {tier['name']}"

    return ui.card(
        ui.card_header("Recent Treasures"),
        ui.input_radio_buttons("history_tier", None, choices=tier_choices, selected=ALL_TIERS, inline=True),
        ui.output_ui("history_status"),
        ui.output_data_frame("history_table"),
        ui.output_ui("history_footer"),
        ui.layout_columns(
            ui.input_action_button("history_prev", "←", class_="btn btn-outline-secondary w-100"),
            ui.output_ui("history_pages"),
            ui.input_action_button("history_next", "→", class_="btn btn-outline-secondary w-100"),
            col_widths=[2, 8, 2],
        ),
        class_="mb-4",
    )


def tier_info_ui():
    """Static odds/prize table for the tiers"""
    rows = [
        ui.p(f"{tier['emoji']} {tier['name']} ({tier['odds']}): {tier['min_value']} ETH")
        for tier in PRIZE_TIERS
    ]
    return ui.card(
        ui.card_header("Treasure Tiers"),
        *rows,
        class_="mb-4",
    )
