"""In-memory test doubles shared by unit tests"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.app.repositories.derivation_counter_repository import DerivationCounterRepository
from src.app.repositories.invoice_event_repository import InvoiceEventRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.services.chain_adapter import ChainAdapter, FeeEstimate, TxReference
from src.domain.asset import AssetFamily, AssetParams, Chain
from src.domain.errors import DuplicateInvoiceError, InsufficientFundsError
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_event import InvoiceEvent, InvoiceEventType
from src.domain.key_derivation import derive

TEST_MNEMONIC = "test test test test test test test test test test test junk"
TREASURY_EVM = "0x000000000000000000000000000000000000dEaD"
TREASURY_SOLANA = "11111111111111111111111111111112"


class InMemoryInvoiceRepository(InvoiceRepository):
    def __init__(self):
        self.invoices: Dict[str, Invoice] = {}

    async def create_if_absent(self, invoice: Invoice) -> Invoice:
        if invoice.id in self.invoices:
            raise DuplicateInvoiceError(f"Invoice id {invoice.id} already exists", field="id")
        if any(i.address == invoice.address for i in self.invoices.values()):
            raise DuplicateInvoiceError(f"Invoice address {invoice.address} already exists", field="address")
        self.invoices[invoice.id] = invoice
        return invoice

    async def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        return self.invoices.get(invoice_id)

    async def list(self, status=None, limit: int = 50, offset: int = 0) -> List[Invoice]:
        items = [i for i in self.invoices.values() if status is None or InvoiceStatus(i.status) == status]
        items.sort(key=lambda i: i.derivation_index, reverse=True)
        return items[offset:offset + limit]

    async def count(self, status=None) -> int:
        return len([i for i in self.invoices.values() if status is None or InvoiceStatus(i.status) == status])

    async def get_by_status(self, status: InvoiceStatus) -> List[Invoice]:
        items = [i for i in self.invoices.values() if InvoiceStatus(i.status) == status]
        return sorted(items, key=lambda i: i.derivation_index)

    async def conditional_update(self, invoice_id, expected_status, changes) -> Optional[Invoice]:
        invoice = self.invoices.get(invoice_id)
        if invoice is None or InvoiceStatus(invoice.status) != InvoiceStatus(expected_status):
            return None
        for key, value in changes.items():
            setattr(invoice, key, value)
        return invoice

    async def delete(self, invoice_id: str, expected_status_in: Iterable[InvoiceStatus]) -> bool:
        invoice = self.invoices.get(invoice_id)
        if invoice is None or InvoiceStatus(invoice.status) not in set(expected_status_in):
            return False
        del self.invoices[invoice_id]
        return True


class InMemoryCounterRepository(DerivationCounterRepository):
    """Counter that yields to the event loop mid-increment"""

    def __init__(self):
        self.values: Dict[Chain, int] = {}
        self._lock = asyncio.Lock()

    async def increment(self, chain: Chain) -> int:
        async with self._lock:
            await asyncio.sleep(0)
            value = self.values.get(chain, 0) + 1
            self.values[chain] = value
            return value

    async def current(self, chain: Chain) -> int:
        return self.values.get(chain, 0)


class InMemoryInvoiceEventRepository(InvoiceEventRepository):
    def __init__(self):
        self.events: List[InvoiceEvent] = []

    async def append(self, event_type: InvoiceEventType, invoice: Invoice) -> InvoiceEvent:
        event = InvoiceEvent(
            id=len(self.events) + 1,
            invoice_id=invoice.id,
            event_type=event_type,
            status=invoice.status,
            snapshot={},
        )
        self.events.append(event)
        return event

    async def get_undelivered(self, status, max_attempts, limit=10):
        return [
            e for e in self.events
            if e.status == status and e.delivered_at is None and e.attempts < max_attempts
        ][:limit]

    async def mark_delivered(self, event_id: int) -> None:
        pass

    async def record_failure(self, event_id: int, error: str) -> None:
        pass


class FakeChainAdapter(ChainAdapter):
    """
    Chain simulated in memory

    Native balances are keyed by address, token balances by
    (address, token_identifier). Transfers move balances and charge the fee.
    """

    def __init__(
        self,
        chain: Chain = Chain.EVM,
        decimals: Optional[Dict[str, int]] = None,
        fee: int = 21000,
        account_creation_deposit: int = 0,
        reserve: int = 0,
    ):
        self.chain = chain
        self.native: Dict[str, int] = {}
        self.tokens: Dict[Tuple[str, str], int] = {}
        self.decimals = decimals or {}
        self.fee = fee
        self.account_creation_deposit = account_creation_deposit
        self.reserve = reserve
        self.transfers: List[Tuple[str, str, int, Optional[str]]] = []
        self.top_ups: List[Tuple[str, int]] = []
        self.failing_addresses: Dict[str, Exception] = {}
        self._tx_counter = 0

    def _tx(self) -> TxReference:
        self._tx_counter += 1
        return TxReference(chain=self.chain, tx_id=f"tx{self._tx_counter}")

    def _check(self, address: str) -> None:
        if address in self.failing_addresses:
            raise self.failing_addresses[address]

    async def get_balance(self, address: str, asset: AssetParams) -> int:
        self._check(address)
        if asset.is_token:
            return self.tokens.get((address, asset.token_identifier), 0)
        return self.native.get(address, 0)

    async def get_native_balance(self, address: str) -> int:
        self._check(address)
        return self.native.get(address, 0)

    async def get_decimals(self, asset: AssetParams) -> int:
        if asset.is_token:
            return self.decimals[asset.token_identifier]
        return 18 if self.chain == Chain.EVM else 9

    async def estimate_transfer_fee(self, from_address, to_address, asset, amount=None) -> FeeEstimate:
        if asset.is_token:
            return FeeEstimate(
                fee=self.fee,
                account_creation_deposit=self.account_creation_deposit,
                reserve=self.reserve,
            )
        return FeeEstimate(fee=self.fee)

    async def submit_transfer(self, signer: Any, to_address, amount, asset, fee_budget) -> TxReference:
        sender = self.signer_address(signer)
        self._check(sender)
        native_cost = fee_budget.fee + (fee_budget.account_creation_deposit if asset.is_token else amount)
        if self.native.get(sender, 0) < native_cost:
            raise InsufficientFundsError(f"{sender} cannot cover {native_cost}")
        self.native[sender] -= native_cost
        if asset.is_token:
            key = (sender, asset.token_identifier)
            self.tokens[key] = self.tokens.get(key, 0) - amount
            dest = (to_address, asset.token_identifier)
            self.tokens[dest] = self.tokens.get(dest, 0) + amount
        else:
            self.native[to_address] = self.native.get(to_address, 0) + amount
        self.transfers.append((sender, to_address, amount, asset.token_identifier))
        return self._tx()

    async def submit_top_up(self, operator_signer: Any, to_address: str, amount: int) -> TxReference:
        self.native[to_address] = self.native.get(to_address, 0) + amount
        self.top_ups.append((to_address, amount))
        return self._tx()

    def signer_address(self, signer: Any) -> str:
        if hasattr(signer, "pubkey"):
            return str(signer.pubkey())
        return signer.address


def make_invoice(seed, index: int = 0, chain: Chain = Chain.EVM, status=InvoiceStatus.PENDING, **kwargs) -> Invoice:
    """Invoice whose address really derives from seed at index"""
    wallet = derive(seed, index, chain)
    fields = dict(
        chain=chain,
        derivation_index=index,
        derivation_path=wallet.derivation_path,
        address=wallet.address,
        asset_family=AssetFamily.NATIVE,
        token_symbol="ETH" if chain == Chain.EVM else "SOL",
        requested_amount="0.01",
        status=status,
    )
    fields.update(kwargs)
    return Invoice(**fields)
