from shiny import ui

from ...config.chest_config import CHEST_PRICE_ETH


def chest_panel_ui():
    """Buy / claim panel driven by the session state machine"""
    return ui.card(
        ui.card_header("Open a Treasure Chest"),
        ui.layout_columns(
            ui.div(ui.span("Cost:")),
            ui.div(ui.strong(f"{CHEST_PRICE_ETH} ETH"), ui.output_ui("chest_price_usd", inline=True)),
            col_widths=[6, 6],
        ),
        ui.output_ui("chest_view"),
        ui.output_ui("chest_actions"),
        class_="mb-4",
    )
