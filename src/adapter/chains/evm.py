"""EVM Chain Adapter

Native coin and ERC-20 transfers over JSON-RPC using web3.py's async API and
eth-account local signing. Transactions use legacy gasPrice pricing.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar
import aiohttp
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError
from src.app.services.chain_adapter import ChainAdapter, FeeEstimate, TxReference
from src.domain.asset import AssetParams, Chain, NATIVE_DECIMALS
from src.domain.errors import (
    ChainError,
    ChainTimeoutError,
    InsufficientFundsError,
    RpcUnavailableError,
    SubmissionRejectedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NATIVE_TRANSFER_GAS = 21000
DEFAULT_GAS_PRICE = 10 * 10**9  # 10 gwei, used when the node reports 0

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def add_buffer(value: int, percent: int) -> int:
    """Increase value by percent, rounding down"""
    return value * (100 + percent) // 100


class EvmChainAdapter(ChainAdapter):
    """
    ChainAdapter for Ethereum-compatible chains

    Features:
    - Gas estimates padded by gas_buffer_percent
    - Top-ups priced at gas price + top_up_gas_price_buffer_percent so they
      confirm ahead of the sweep
    - Top-ups serialized on the operator nonce with an asyncio.Lock
    """

    chain = Chain.EVM

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        chain_id: Optional[int] = None,
        rpc_timeout: float = 30.0,
        confirmation_timeout: float = 120.0,
        gas_buffer_percent: int = 10,
        top_up_gas_price_buffer_percent: int = 20,
        web3: Optional[AsyncWeb3] = None,
    ):
        if web3 is None:
            if not rpc_url:
                raise ValueError("rpc_url is required")
            web3 = AsyncWeb3(
                AsyncHTTPProvider(
                    rpc_url,
                    request_kwargs={"timeout": aiohttp.ClientTimeout(total=rpc_timeout)},
                )
            )
        self.w3 = web3
        self.rpc_timeout = rpc_timeout
        self.confirmation_timeout = confirmation_timeout
        self.gas_buffer_percent = gas_buffer_percent
        self.top_up_gas_price_buffer_percent = top_up_gas_price_buffer_percent
        self._chain_id = chain_id
        self._top_up_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _rpc(self, awaitable: Awaitable[T], timeout: Optional[float] = None) -> T:
        """Await an RPC call, translating failures into ChainError"""
        try:
            return await asyncio.wait_for(awaitable, timeout or self.rpc_timeout)
        except ChainError:
            raise
        except TimeExhausted as e:
            raise ChainTimeoutError(str(e)) from e
        except asyncio.TimeoutError as e:
            raise RpcUnavailableError("RPC call timed out") from e
        except ContractLogicError as e:
            raise SubmissionRejectedError(f"Execution reverted: {e}") from e
        except Web3RPCError as e:
            message = str(e)
            if "insufficient funds" in message.lower():
                raise InsufficientFundsError(message) from e
            raise SubmissionRejectedError(message) from e
        except (aiohttp.ClientError, ConnectionError, OSError) as e:
            raise RpcUnavailableError(f"RPC transport error: {e}") from e

    def _checksum(self, address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    def _token(self, asset: AssetParams):
        return self.w3.eth.contract(address=self._checksum(asset.token_identifier), abi=ERC20_ABI)

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._rpc(self.w3.eth.chain_id)
        return self._chain_id

    async def _get_gas_price(self) -> int:
        gas_price = await self._rpc(self.w3.eth.gas_price)
        return gas_price or DEFAULT_GAS_PRICE

    async def _sign_and_send(self, signer: LocalAccount, tx: dict) -> TxReference:
        signed = signer.sign_transaction(tx)
        tx_hash = await self._rpc(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        tx_id = AsyncWeb3.to_hex(tx_hash)
        logger.info(f"Submitted transaction {tx_id} from {signer.address}")

        receipt = await self._rpc(
            self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirmation_timeout),
            timeout=self.confirmation_timeout + self.rpc_timeout,
        )
        if receipt["status"] != 1:
            raise SubmissionRejectedError(f"Transaction {tx_id} reverted")

        return TxReference(
            chain=self.chain,
            tx_id=tx_id,
            extra={"block_number": receipt["blockNumber"], "gas_used": receipt["gasUsed"]},
        )

    # ------------------------------------------------------------------
    # ChainAdapter
    # ------------------------------------------------------------------

    async def get_native_balance(self, address: str) -> int:
        return await self._rpc(self.w3.eth.get_balance(self._checksum(address)))

    async def get_balance(self, address: str, asset: AssetParams) -> int:
        if not asset.is_token:
            return await self.get_native_balance(address)
        contract = self._token(asset)
        return await self._rpc(contract.functions.balanceOf(self._checksum(address)).call())

    async def get_decimals(self, asset: AssetParams) -> int:
        if not asset.is_token:
            return NATIVE_DECIMALS[Chain.EVM]
        return await self._rpc(self._token(asset).functions.decimals().call())

    async def estimate_transfer_fee(
        self,
        from_address: str,
        to_address: str,
        asset: AssetParams,
        amount: Optional[int] = None,
    ) -> FeeEstimate:
        sender = self._checksum(from_address)
        recipient = self._checksum(to_address)

        if asset.is_token:
            call = self._token(asset).functions.transfer(recipient, amount or 0)
            gas = await self._rpc(call.estimate_gas({"from": sender}))
        else:
            gas = await self._rpc(
                self.w3.eth.estimate_gas({"from": sender, "to": recipient, "value": 0})
            )

        gas_limit = add_buffer(gas, self.gas_buffer_percent)
        gas_price = await self._get_gas_price()
        return FeeEstimate(fee=gas_limit * gas_price, gas_limit=gas_limit, gas_price=gas_price)

    async def submit_transfer(
        self,
        signer: LocalAccount,
        to_address: str,
        amount: int,
        asset: AssetParams,
        fee_budget: FeeEstimate,
    ) -> TxReference:
        sender = signer.address
        recipient = self._checksum(to_address)
        nonce = await self._rpc(self.w3.eth.get_transaction_count(sender, "pending"))
        params = {
            "from": sender,
            "nonce": nonce,
            "gas": fee_budget.gas_limit,
            "gasPrice": fee_budget.gas_price,
            "chainId": await self._get_chain_id(),
        }

        if asset.is_token:
            tx = await self._rpc(
                self._token(asset).functions.transfer(recipient, amount).build_transaction(params)
            )
        else:
            tx = dict(params, to=recipient, value=amount)
        tx.pop("from", None)

        return await self._sign_and_send(signer, tx)

    async def submit_top_up(self, operator_signer: LocalAccount, to_address: str, amount: int) -> TxReference:
        async with self._top_up_lock:
            gas_price = add_buffer(await self._get_gas_price(), self.top_up_gas_price_buffer_percent)
            balance = await self.get_native_balance(operator_signer.address)
            if balance < amount + NATIVE_TRANSFER_GAS * gas_price:
                raise InsufficientFundsError(
                    f"Operator wallet {operator_signer.address} holds {balance}, "
                    f"needs {amount} plus fee"
                )

            nonce = await self._rpc(
                self.w3.eth.get_transaction_count(operator_signer.address, "pending")
            )
            tx = {
                "to": self._checksum(to_address),
                "value": amount,
                "gas": NATIVE_TRANSFER_GAS,
                "gasPrice": gas_price,
                "nonce": nonce,
                "chainId": await self._get_chain_id(),
            }
            logger.info(f"Topping up {to_address} with {amount} wei")
            return await self._sign_and_send(operator_signer, tx)

    def signer_address(self, signer: Any) -> str:
        return signer.address

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
