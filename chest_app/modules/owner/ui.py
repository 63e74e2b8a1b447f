from shiny import ui


def owner_panel_ui():
    """Placeholder; the owner controls render only for the privileged identity"""
    return ui.output_ui("owner_controls")


def owner_controls_card():
    return ui.card(
        ui.card_header("Contract Owner Controls"),
        ui.layout_columns(
            ui.span("Contract Balance:"),
            ui.output_ui("owner_balance"),
            col_widths=[6, 6],
        ),
        ui.input_action_button("owner_refresh_balance", "Refresh Balance", class_="btn btn-link btn-sm"),
        ui.hr(),
        ui.h5("Withdraw Funds"),
        ui.input_numeric("owner_withdraw_amount", "Amount in ETH", value=0.1, min=0, step=0.01),
        ui.input_action_button("owner_withdraw", "Withdraw ETH", class_="btn btn-danger w-100"),
        ui.output_ui("owner_status"),
        class_="mb-4 border-danger",
    )
