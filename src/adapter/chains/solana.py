"""Solana Chain Adapter

SOL and SPL token transfers using solana-py's AsyncClient and solders
transactions. Token balances and mint decimals are parsed straight from the
account data so no jsonParsed encoding is required.
"""

import asyncio
import logging
from typing import Any, Awaitable, List, Optional, TypeVar
import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)
from src.app.services.chain_adapter import ChainAdapter, FeeEstimate, TxReference
from src.domain.asset import AssetParams, Chain, NATIVE_DECIMALS
from src.domain.errors import (
    AccountNotFoundError,
    ChainError,
    ChainTimeoutError,
    InsufficientFundsError,
    RpcUnavailableError,
    SubmissionRejectedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOKEN_ACCOUNT_SIZE = 165
TOKEN_AMOUNT_OFFSET = 64
MINT_DECIMALS_OFFSET = 44
DEFAULT_SIGNATURE_FEE = 5000


def parse_token_amount(data: bytes) -> int:
    """Amount field (u64 little-endian) of an SPL token account"""
    if len(data) < TOKEN_AMOUNT_OFFSET + 8:
        raise ChainError(f"Token account data too short ({len(data)} bytes)")
    return int.from_bytes(data[TOKEN_AMOUNT_OFFSET:TOKEN_AMOUNT_OFFSET + 8], "little")


def parse_mint_decimals(data: bytes) -> int:
    """Decimals field of an SPL mint account"""
    if len(data) <= MINT_DECIMALS_OFFSET:
        raise ChainError(f"Mint account data too short ({len(data)} bytes)")
    return data[MINT_DECIMALS_OFFSET]


class SolanaChainAdapter(ChainAdapter):
    """
    ChainAdapter for Solana

    The invoice address pays its own transaction fee. For token sweeps it
    also pays the rent of the treasury's associated token account when that
    account does not exist yet, and must remain rent-exempt afterwards.
    """

    chain = Chain.SOLANA

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        rpc_timeout: float = 30.0,
        confirmation_timeout: float = 60.0,
        client: Optional[AsyncClient] = None,
    ):
        if client is None:
            if not rpc_url:
                raise ValueError("rpc_url is required")
            client = AsyncClient(rpc_url, commitment=Confirmed, timeout=rpc_timeout)
        self.client = client
        self.rpc_timeout = rpc_timeout
        self.confirmation_timeout = confirmation_timeout
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
        except UnconfirmedTxError as e:
            raise ChainTimeoutError(str(e)) from e
        except asyncio.TimeoutError as e:
            raise RpcUnavailableError("RPC call timed out") from e
        except RPCException as e:
            message = str(e)
            if "insufficient" in message.lower():
                raise InsufficientFundsError(message) from e
            raise SubmissionRejectedError(message) from e
        except (SolanaRpcException, httpx.HTTPError, ConnectionError, OSError) as e:
            raise RpcUnavailableError(f"RPC transport error: {e}") from e

    async def _account_data(self, pubkey: Pubkey) -> Optional[bytes]:
        resp = await self._rpc(self.client.get_account_info(pubkey, commitment=Confirmed))
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def _rent_exempt_minimum(self, size: int) -> int:
        resp = await self._rpc(self.client.get_minimum_balance_for_rent_exemption(size, commitment=Confirmed))
        return resp.value

    async def _latest_blockhash(self):
        resp = await self._rpc(self.client.get_latest_blockhash(commitment=Confirmed))
        return resp.value.blockhash

    async def _token_instructions(
        self,
        owner: Pubkey,
        to_address: str,
        amount: int,
        asset: AssetParams,
        decimals: int,
    ) -> tuple[List[Instruction], bool]:
        """Transfer instructions plus whether the destination account is created"""
        mint = Pubkey.from_string(asset.token_identifier)
        recipient = Pubkey.from_string(to_address)
        source = get_associated_token_address(owner, mint)
        destination = get_associated_token_address(recipient, mint)

        instructions: List[Instruction] = []
        creates_account = await self._account_data(destination) is None
        if creates_account:
            instructions.append(create_associated_token_account(payer=owner, owner=recipient, mint=mint))

        instructions.append(
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=source,
                    mint=mint,
                    dest=destination,
                    owner=owner,
                    amount=amount,
                    decimals=decimals,
                )
            )
        )
        return instructions, creates_account

    async def _send(self, signer: Keypair, instructions: List[Instruction]) -> TxReference:
        blockhash = await self._latest_blockhash()
        message = Message.new_with_blockhash(instructions, signer.pubkey(), blockhash)
        tx = Transaction([signer], message, blockhash)

        resp = await self._rpc(
            self.client.send_transaction(tx, opts=TxOpts(skip_confirmation=True, preflight_commitment=Confirmed))
        )
        signature = resp.value
        logger.info(f"Submitted transaction {signature} from {signer.pubkey()}")

        confirmation = await self._rpc(
            self.client.confirm_transaction(signature, commitment=Confirmed),
            timeout=self.confirmation_timeout,
        )
        statuses = confirmation.value
        if statuses and statuses[0] is not None and statuses[0].err is not None:
            raise SubmissionRejectedError(f"Transaction {signature} failed: {statuses[0].err}")

        return TxReference(chain=self.chain, tx_id=str(signature))

    # ------------------------------------------------------------------
    # ChainAdapter
    # ------------------------------------------------------------------

    async def get_native_balance(self, address: str) -> int:
        resp = await self._rpc(self.client.get_balance(Pubkey.from_string(address), commitment=Confirmed))
        return resp.value

    async def get_balance(self, address: str, asset: AssetParams) -> int:
        if not asset.is_token:
            return await self.get_native_balance(address)

        owner = Pubkey.from_string(address)
        mint = Pubkey.from_string(asset.token_identifier)
        data = await self._account_data(get_associated_token_address(owner, mint))
        if data is None:
            return 0
        return parse_token_amount(data)

    async def get_decimals(self, asset: AssetParams) -> int:
        if not asset.is_token:
            return NATIVE_DECIMALS[Chain.SOLANA]

        data = await self._account_data(Pubkey.from_string(asset.token_identifier))
        if data is None:
            raise AccountNotFoundError(f"Mint {asset.token_identifier} not found")
        return parse_mint_decimals(data)

    async def estimate_transfer_fee(
        self,
        from_address: str,
        to_address: str,
        asset: AssetParams,
        amount: Optional[int] = None,
    ) -> FeeEstimate:
        payer = Pubkey.from_string(from_address)
        deposit = 0
        reserve = 0

        if asset.is_token:
            decimals = await self.get_decimals(asset)
            instructions, creates_account = await self._token_instructions(
                payer, to_address, amount or 0, asset, decimals
            )
            if creates_account:
                deposit = await self._rent_exempt_minimum(TOKEN_ACCOUNT_SIZE)
            # The payer keeps SOL after a token sweep, so it must stay rent-exempt
            reserve = await self._rent_exempt_minimum(0)
        else:
            instructions = [
                transfer(
                    TransferParams(
                        from_pubkey=payer,
                        to_pubkey=Pubkey.from_string(to_address),
                        lamports=amount or 0,
                    )
                )
            ]

        message = Message.new_with_blockhash(instructions, payer, await self._latest_blockhash())
        resp = await self._rpc(self.client.get_fee_for_message(message, commitment=Confirmed))
        fee = resp.value if resp.value is not None else DEFAULT_SIGNATURE_FEE

        return FeeEstimate(fee=fee, account_creation_deposit=deposit, reserve=reserve)

    async def submit_transfer(
        self,
        signer: Keypair,
        to_address: str,
        amount: int,
        asset: AssetParams,
        fee_budget: FeeEstimate,
    ) -> TxReference:
        owner = signer.pubkey()
        if asset.is_token:
            decimals = await self.get_decimals(asset)
            instructions, _ = await self._token_instructions(owner, to_address, amount, asset, decimals)
        else:
            instructions = [
                transfer(
                    TransferParams(
                        from_pubkey=owner,
                        to_pubkey=Pubkey.from_string(to_address),
                        lamports=amount,
                    )
                )
            ]
        return await self._send(signer, instructions)

    async def submit_top_up(self, operator_signer: Keypair, to_address: str, amount: int) -> TxReference:
        async with self._top_up_lock:
            operator = operator_signer.pubkey()
            balance = await self.get_native_balance(str(operator))
            if balance < amount + DEFAULT_SIGNATURE_FEE:
                raise InsufficientFundsError(
                    f"Operator wallet {operator} holds {balance}, needs {amount} plus fee"
                )
            logger.info(f"Topping up {to_address} with {amount} lamports")
            instruction = transfer(
                TransferParams(
                    from_pubkey=operator,
                    to_pubkey=Pubkey.from_string(to_address),
                    lamports=amount,
                )
            )
            return await self._send(operator_signer, [instruction])

    def signer_address(self, signer: Any) -> str:
        return str(signer.pubkey())

    async def close(self) -> None:
        await self.client.close()
