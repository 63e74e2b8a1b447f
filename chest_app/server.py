from shiny import render, ui
import logging

from .modules.chest import register_chest_outputs
from .modules.history import register_history_outputs
from .modules.owner import register_owner_outputs
from .services.blockchain_service import LedgerReader, Web3Submitter, make_web3
from .services.chest_client import ChestClient
from .services.decoders.base import format_address
from .services.history_aggregator import BaseScanClient, HistoryAggregator
from .services.price_service import EthPriceFeed

logger = logging.getLogger(__name__)


def create_client() -> ChestClient:
    """Build a fully wired client against Base Sepolia"""
    w3 = make_web3()
    ledger = LedgerReader(w3)
    return ChestClient(
        submitter=Web3Submitter(w3),
        ledger=ledger,
        aggregator=HistoryAggregator(BaseScanClient(), ledger.get_block_number),
        price_feed=EthPriceFeed(),
    )


def server(input, output, session):

    client = create_client()
    client.start()
    session.on_ended(client.close)

    register_chest_outputs(input, output, session, client)
    register_history_outputs(input, output, session, client.aggregator, client.price_feed)
    register_owner_outputs(input, output, session, client)

    @output
    @render.ui
    def identity_badge():
        identity = client.identity
        if not identity:
            return ui.span("No wallet configured", class_="text-muted")
        label = "👑 Owner" if client.is_owner else "Player"
        return ui.span(f"{label}: {format_address(identity)}", class_="text-light")
