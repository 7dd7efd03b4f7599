"""Sweep strategies per asset family

The sweeper picks a strategy from SWEEP_STRATEGIES by the invoice's asset
family. Adding an asset family means adding a strategy here and the matching
chain adapter support, nothing else.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List
from src.app.services.chain_adapter import ChainAdapter, TxReference
from src.domain.amount import from_base_units
from src.domain.asset import AssetFamily, Chain, NATIVE_DECIMALS
from src.domain.errors import InsufficientFundsError
from src.domain.invoice import Invoice
from src.domain.key_derivation import DerivedWallet
from .dtos import SweepOutcome

logger = logging.getLogger(__name__)


@dataclass
class SweepContext:
    invoice: Invoice
    wallet: DerivedWallet
    treasury_address: str
    chain_adapter: ChainAdapter
    operator_signer: Any = field(default=None, repr=False)


@dataclass
class SweepExecution:
    outcome: SweepOutcome
    amount: int = 0
    tx_references: List[TxReference] = field(default_factory=list)


class SweepStrategy(ABC):
    """Moves the full balance of one asset family to treasury"""

    @abstractmethod
    async def sweep(self, ctx: SweepContext) -> SweepExecution:
        pass


class NativeSweepStrategy(SweepStrategy):
    """
    Drain the native balance, paying the fee out of the swept amount

    No top-up: if the balance does not exceed the fee the invoice is left
    paid for manual handling.
    """

    async def sweep(self, ctx: SweepContext) -> SweepExecution:
        invoice = ctx.invoice
        asset = invoice.asset
        adapter = ctx.chain_adapter

        balance = await adapter.get_balance(ctx.wallet.address, asset)
        estimate = await adapter.estimate_transfer_fee(
            ctx.wallet.address, ctx.treasury_address, asset, balance
        )

        if balance <= estimate.fee + estimate.reserve:
            logger.warning(
                f"Balance too low to sweep invoice {invoice.id}: "
                f"balance={balance}, fee={estimate.fee}"
            )
            return SweepExecution(outcome=SweepOutcome.SKIPPED_INSUFFICIENT_FUNDS)

        amount = balance - estimate.fee - estimate.reserve
        tx = await adapter.submit_transfer(ctx.wallet.signer, ctx.treasury_address, amount, asset, estimate)

        decimals = NATIVE_DECIMALS[Chain(invoice.chain)]
        logger.info(
            f"Full native sweep complete for invoice {invoice.id}: "
            f"{from_base_units(amount, decimals)} (tx {tx})"
        )
        return SweepExecution(outcome=SweepOutcome.SWEPT, amount=amount, tx_references=[tx])


class TokenSweepStrategy(SweepStrategy):
    """
    Sweep the full token balance, topping up fee currency if needed

    The native amount needed is the actual transfer fee plus the rent for
    creating the treasury token account (when missing) plus any reserve the
    sender must keep. Only the shortfall is sent from the hot wallet, so a
    retry after a landed top-up sends nothing.
    """

    async def sweep(self, ctx: SweepContext) -> SweepExecution:
        invoice = ctx.invoice
        asset = invoice.asset
        adapter = ctx.chain_adapter
        address = ctx.wallet.address

        token_balance = await adapter.get_balance(address, asset)
        if token_balance == 0:
            logger.warning(f"No {invoice.token_symbol or 'token'} balance to sweep for invoice {invoice.id}")
            return SweepExecution(outcome=SweepOutcome.SKIPPED_EMPTY)

        estimate = await adapter.estimate_transfer_fee(address, ctx.treasury_address, asset, token_balance)
        required = estimate.required_native
        native_balance = await adapter.get_native_balance(address)

        tx_references = []
        if native_balance < required:
            shortfall = required - native_balance
            if ctx.operator_signer is None:
                raise InsufficientFundsError(
                    f"Invoice {invoice.id} needs {shortfall} more fee currency and no operator signer is configured"
                )
            logger.info(
                f"Insufficient fee currency for invoice {invoice.id}: "
                f"{native_balance} < {required}, topping up {shortfall}"
            )
            top_up_tx = await adapter.submit_top_up(ctx.operator_signer, address, shortfall)
            tx_references.append(top_up_tx)

            native_balance = await adapter.get_native_balance(address)
            if native_balance < required:
                raise InsufficientFundsError(
                    f"Top-up {top_up_tx} confirmed but balance {native_balance} is still below {required}"
                )

        logger.info(f"Sweeping {token_balance} base units of {invoice.token_symbol or asset.token_identifier} to treasury")
        tx = await adapter.submit_transfer(ctx.wallet.signer, ctx.treasury_address, token_balance, asset, estimate)
        tx_references.append(tx)

        logger.info(f"Token sweep complete for invoice {invoice.id} (tx {tx})")
        return SweepExecution(outcome=SweepOutcome.SWEPT, amount=token_balance, tx_references=tx_references)


SWEEP_STRATEGIES: Dict[AssetFamily, SweepStrategy] = {
    AssetFamily.NATIVE: NativeSweepStrategy(),
    AssetFamily.TOKEN: TokenSweepStrategy(),
}
