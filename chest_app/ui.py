from shiny import ui as shiny_ui

from .modules.chest import chest_panel_ui
from .modules.history import history_panel_ui, tier_info_ui
from .modules.owner import owner_panel_ui


def header_ui():
    return shiny_ui.div(
        shiny_ui.layout_columns(
            shiny_ui.h1("ETH Chests", class_="text-warning"),
            shiny_ui.div(shiny_ui.output_ui("identity_badge"), class_="text-end"),
            col_widths=[8, 4],
        ),
        class_="p-3 mb-4 bg-dark",
    )


app_ui = shiny_ui.page_fluid(
    header_ui(),
    shiny_ui.div(
        shiny_ui.div(
            shiny_ui.p("Ahoy, brave adventurer! 🏴‍☠️", class_="lead"),
            shiny_ui.p("Dare ye try yer luck with our mystical chests? Each one holds secrets and treasures untold!"),
            class_="text-center mb-4",
        ),
        chest_panel_ui(),
        owner_panel_ui(),
        tier_info_ui(),
        history_panel_ui(),
        class_="container",
        style="max-width: 48rem;",
    ),
    title="ETH Chests",
)
