"""Show operator and treasury balances

Usage:
    python -m scripts.wallet_info
    python -m scripts.wallet_info --index 42
"""

import argparse
import asyncio
import logging

from config import ApplicationConfig
from src.adapter.chains import create_chain_adapter
from src.adapter.services.secret_store import YamlSecretStore
from src.domain.amount import from_base_units
from src.domain.asset import NATIVE_DECIMALS, NATIVE_SYMBOLS
from src.domain.key_derivation import derive

logger = logging.getLogger(__name__)


async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Operator and treasury wallet info")
    parser.add_argument("--index", type=int, help="Also derive and show the invoice address at this index")
    args = parser.parse_args()

    adapter = create_chain_adapter(ApplicationConfig)
    store = YamlSecretStore(ApplicationConfig.SECRETS_FILE, adapter.chain)
    decimals = NATIVE_DECIMALS[adapter.chain]
    symbol = NATIVE_SYMBOLS[adapter.chain]

    try:
        print(f"Chain: {adapter.chain.value} ({ApplicationConfig.RPC_URL})")

        operator = store.get_operator_signer()
        if operator is not None:
            address = adapter.signer_address(operator)
            balance = await adapter.get_native_balance(address)
            print(f"Operator: {address} {from_base_units(balance, decimals)} {symbol}")
        else:
            print("Operator: not configured")

        if ApplicationConfig.TREASURY_ADDRESS:
            balance = await adapter.get_native_balance(ApplicationConfig.TREASURY_ADDRESS)
            print(f"Treasury: {ApplicationConfig.TREASURY_ADDRESS} {from_base_units(balance, decimals)} {symbol}")
        else:
            print("Treasury: not configured")

        if args.index is not None:
            wallet = derive(store.get_seed_material(), args.index, adapter.chain)
            balance = await adapter.get_native_balance(wallet.address)
            print(f"Invoice {wallet.derivation_path}: {wallet.address} {from_base_units(balance, decimals)} {symbol}")
    finally:
        await adapter.close()


if __name__ == "__main__":
    asyncio.run(main())
