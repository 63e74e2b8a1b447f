from shiny import reactive, render, ui
import asyncio
import logging

from ...services.errors import ChestError, TransactionFailed
from .ui import owner_controls_card

logger = logging.getLogger(__name__)


def register_owner_outputs(input, output, session, client):
    """Register server outputs for the owner-only controls"""

    controls = client.owner_controls
    balance = reactive.value(None)
    status = reactive.value("")
    pending = set()

    @output
    @render.ui
    def owner_controls():
        if not controls.enabled:
            return ui.div()
        return owner_controls_card()

    async def _refresh_balance():
        value = await asyncio.to_thread(controls.fetch_balance)
        balance.set(value)
        if controls.last_error:
            status.set(f"Balance refresh failed: {controls.last_error}")

    @reactive.effect
    def _initial_balance():
        if controls.enabled:
            task = asyncio.get_running_loop().create_task(_refresh_balance())
            pending.add(task)
            task.add_done_callback(pending.discard)

    @reactive.effect
    @reactive.event(input.owner_refresh_balance)
    async def _on_refresh():
        await _refresh_balance()

    @reactive.effect
    @reactive.event(input.owner_withdraw)
    def _on_withdraw():
        amount = input.owner_withdraw_amount()

        async def runner():
            try:
                status.set("Withdrawal submitted... waiting for confirmation.")
                event = await controls.withdraw(amount)
                event.raise_for_status()
            except TransactionFailed as e:
                status.set(f"Withdrawal failed: {e}")
                return
            except (ChestError, ValueError) as e:
                status.set(str(e))
                return
            balance.set(controls.balance)
            status.set(f"Withdrawal confirmed: {event.tx_hash}")

        task = asyncio.get_running_loop().create_task(runner())
        pending.add(task)
        task.add_done_callback(pending.discard)

    @output
    @render.ui
    def owner_balance():
        value = balance.get()
        return ui.strong(f"{value} ETH" if value is not None else "...")

    @output
    @render.ui
    def owner_status():
        message = status.get()
        return ui.p(message, class_="text-muted small") if message else ui.div()
