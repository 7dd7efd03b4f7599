"""Shareable payment descriptor

Address, amount and asset of an invoice in a form wallets understand as a
payment URI. Rendering the URI (QR code, link) is left to the caller.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode
from src.domain.asset import AssetFamily, Chain

URI_SCHEMES = {
    Chain.EVM: "ethereum",
    Chain.SOLANA: "solana",
}

# Query parameter naming the token to pay with
TOKEN_PARAMS = {
    Chain.EVM: "token",
    Chain.SOLANA: "spl-token",
}


@dataclass(frozen=True)
class PaymentDescriptor:
    chain: Chain
    address: str
    amount: str
    asset_family: AssetFamily
    token_identifier: Optional[str] = None
    label: Optional[str] = None

    @property
    def scheme(self) -> str:
        return URI_SCHEMES[Chain(self.chain)]

    @property
    def uri(self) -> str:
        """
        Payment URI

        native: <scheme>:<address>?amount=<amount>
        token:  <scheme>:<address>?amount=<amount>&<token-param>=<token>
        """
        params = [("amount", self.amount)]
        if self.asset_family == AssetFamily.TOKEN:
            params.append((TOKEN_PARAMS[Chain(self.chain)], self.token_identifier))
        if self.label:
            params.append(("label", self.label))
        return f"{self.scheme}:{self.address}?{urlencode(params, quote_via=quote, safe='')}"


def build_payment_descriptor(invoice) -> PaymentDescriptor:
    """Build the descriptor for an Invoice; Solana URIs carry a label"""
    label = f"Invoice {invoice.id}" if Chain(invoice.chain) == Chain.SOLANA else None
    return PaymentDescriptor(
        chain=invoice.chain,
        address=invoice.address,
        amount=invoice.requested_amount,
        asset_family=invoice.asset_family,
        token_identifier=invoice.token_identifier,
        label=label,
    )
