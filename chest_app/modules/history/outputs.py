from shiny import reactive, render, ui
import logging

from ...config.chest_config import ALL_TIERS, HISTORY_POLL_INTERVAL, ITEMS_PER_PAGE
from ...services.history_aggregator import page_window, paginate, to_dataframe, total_pages

logger = logging.getLogger(__name__)


def register_history_outputs(input, output, session, aggregator, price_feed=None):
    """Register server outputs for the prize history panel"""

    current_page = reactive.value(1)
    refresh_tick = reactive.value(0)

    @reactive.effect
    def _watch_aggregator():
        """Bump a tick when the aggregator has new data"""
        reactive.invalidate_later(HISTORY_POLL_INTERVAL / 6)
        stamp = aggregator.last_refresh.timestamp() if aggregator.last_refresh else 0
        refresh_tick.set(stamp)

    @reactive.calc
    def filtered_events():
        refresh_tick.get()
        return aggregator.filter_by_tier(input.history_tier())

    @reactive.calc
    def page_count():
        return total_pages(len(filtered_events()), ITEMS_PER_PAGE)

    @reactive.effect
    @reactive.event(input.history_tier)
    def _reset_page():
        current_page.set(1)

    @reactive.effect
    @reactive.event(input.history_prev)
    def _prev_page():
        current_page.set(max(1, current_page.get() - 1))

    @reactive.effect
    @reactive.event(input.history_next)
    def _next_page():
        current_page.set(min(max(page_count(), 1), current_page.get() + 1))

    @output
    @render.ui
    def history_status():
        refresh_tick.get()
        if aggregator.last_error:
            return ui.div(f"Could not refresh history: {aggregator.last_error}", class_="alert alert-warning")
        if not aggregator.loaded:
            return ui.p("Loading treasure history... ⏳", class_="text-center text-muted")
        if not filtered_events():
            tier = input.history_tier()
            label = f"{tier} " if tier != ALL_TIERS else ""
            return ui.p(f"No {label}treasures found", class_="text-center text-muted")
        return ui.div()

    @output
    @render.data_frame
    def history_table():
        price = price_feed.price if price_feed else None
        page = paginate(filtered_events(), ITEMS_PER_PAGE, current_page.get())
        return render.DataGrid(to_dataframe(page, price), width="100%")

    @output
    @render.ui
    def history_footer():
        events = filtered_events()
        if not events:
            return ui.div()
        tier = input.history_tier()
        label = f"{tier} " if tier != ALL_TIERS else ""
        return ui.p(f"Showing {len(events)} most recent {label}treasures", class_="text-center text-muted small")

    @output
    @render.ui
    def history_pages():
        total = page_count()
        if total <= 1:
            return ui.div()
        current = current_page.get()
        labels = [
            ui.strong(str(p)) if p == current else ui.span(str(p))
            for p in page_window(current, total)
        ]
        return ui.div(*labels, class_="d-flex justify-content-center gap-2")
