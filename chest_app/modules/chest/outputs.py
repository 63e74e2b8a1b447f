from shiny import reactive, render, ui
import asyncio
import logging

from ...config.chest_config import BASE_SEPOLIA_EXPLORER, CHEST_PRICE_ETH
from ...services.errors import ChestError
from ...services.history_aggregator import format_usd_value

logger = logging.getLogger(__name__)


def register_chest_outputs(input, output, session, client):
    """Register server outputs for the buy/claim panel"""

    # Background submissions; kept referenced until they finish
    submissions = set()
    action_error = reactive.value("")
    session_phase = reactive.value(client.machine.phase.value)
    claim_busy = reactive.value(False)

    def _launch(coro_factory, label):
        async def runner():
            try:
                await coro_factory()
            except ChestError as e:
                logger.warning(f"{label} rejected: {e}")
                action_error.set(str(e))
            except Exception as e:
                logger.exception(f"{label} failed unexpectedly")
                action_error.set(f"{label} failed: {e}")

        task = asyncio.get_running_loop().create_task(runner())
        submissions.add(task)
        task.add_done_callback(submissions.discard)

    @reactive.effect
    def _track_session():
        """Mirror phase changes into reactive values so buttons only re-render on change"""
        reactive.invalidate_later(1)
        client.machine.poll()
        session_phase.set(client.machine.phase.value)
        claim_busy.set(client.machine.claim_in_flight)

    @reactive.effect
    @reactive.event(input.buy_chest)
    def _buy_chest():
        action_error.set("")
        _launch(client.submit_stake, "Buy chest")

    @reactive.effect
    @reactive.event(input.claim_prize)
    def _claim_prize():
        action_error.set("")
        _launch(client.submit_claim, "Claim prize")

    @reactive.effect
    @reactive.event(input.play_again)
    def _play_again():
        action_error.set("")
        try:
            client.reset()
        except ChestError as e:
            action_error.set(str(e))

    @output
    @render.ui
    def chest_price_usd():
        reactive.invalidate_later(30)
        price = client.price_feed.price if client.price_feed else None
        return ui.span(format_usd_value(CHEST_PRICE_ETH, price), class_="text-muted small ms-2")

    @output
    @render.ui
    def chest_view():
        reactive.invalidate_later(1)
        snap = client.machine.snapshot()
        phase = snap['phase']

        children = []
        if snap['condition']:
            children.append(ui.div(snap['status'], class_="alert alert-warning"))
            if snap['last_error']:
                children.append(ui.p(snap['last_error'], class_="text-muted small"))

        if phase == "Resolved":
            children.extend([
                ui.h3(snap['status'], class_="text-center"),
                ui.h2(f"{snap['outcome_amount']} ETH", class_="text-center text-success"),
                ui.div(
                    ui.a("View on Block Explorer ↗",
                         href=f"{BASE_SEPOLIA_EXPLORER}/tx/{snap['claim_tx_hash']}",
                         target="_blank", rel="noopener noreferrer"),
                    class_="text-center mb-3",
                ),
            ])
        elif not snap['condition']:
            children.append(ui.p(snap['status'], class_="text-center"))

        if snap['stake_block_height'] is not None and phase != "Resolved":
            children.append(ui.p(f"Purchase Block: {snap['stake_block_height']}", class_="text-muted small"))
        if snap['cooldown_remaining'] is not None:
            children.append(ui.p(f"Claimable in {snap['cooldown_remaining']:.0f}s", class_="text-muted small"))

        error = action_error.get()
        if error:
            children.append(ui.div(error, class_="alert alert-danger"))

        return ui.div(*children)

    @output
    @render.ui
    def chest_actions():
        phase = session_phase.get()

        if phase == "Idle":
            return ui.input_action_button("buy_chest", "Buy Chest 🎁", class_="btn btn-warning w-100")
        if phase == "Claimable":
            return ui.input_action_button(
                "claim_prize", "Claim Prize 💎",
                class_="btn btn-success w-100",
                disabled=claim_busy.get(),
            )
        if phase == "Resolved":
            return ui.input_action_button("play_again", "Play Again! 🎲", class_="btn btn-warning w-100")
        return ui.div()
