"""Chain adapter factory"""

from src.app.services.chain_adapter import ChainAdapter
from src.domain.asset import Chain
from .evm import EvmChainAdapter
from .solana import SolanaChainAdapter


def create_chain_adapter(config) -> ChainAdapter:
    """
    Build the adapter for config.CHAIN

    Args:
        config: ApplicationConfig (or any object with the same attributes)
    """
    chain = Chain(config.CHAIN)
    if chain == Chain.EVM:
        return EvmChainAdapter(
            rpc_url=config.RPC_URL,
            chain_id=config.EVM_CHAIN_ID,
            rpc_timeout=config.RPC_TIMEOUT_SECONDS,
            confirmation_timeout=config.CONFIRMATION_TIMEOUT_SECONDS,
            gas_buffer_percent=config.GAS_BUFFER_PERCENT,
            top_up_gas_price_buffer_percent=config.TOP_UP_GAS_PRICE_BUFFER_PERCENT,
        )
    return SolanaChainAdapter(
        rpc_url=config.RPC_URL,
        rpc_timeout=config.RPC_TIMEOUT_SECONDS,
        confirmation_timeout=config.CONFIRMATION_TIMEOUT_SECONDS,
    )


__all__ = ["create_chain_adapter", "EvmChainAdapter", "SolanaChainAdapter"]
