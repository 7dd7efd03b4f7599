"""Generate key material for a new deployment

Creates a 24-word BIP-39 mnemonic (master seed for invoice addresses) and an
operator hot-wallet key for the configured chain, and writes them to the
secrets YAML file read by YamlSecretStore.

Usage:
    python -m scripts.generate_wallets
    python -m scripts.generate_wallets --chain solana --output ./secrets.yaml
"""

import argparse
import logging
import os
import sys
import yaml
from bip_utils import Bip39MnemonicGenerator, Bip39WordsNum
from eth_account import Account
from solders.keypair import Keypair

from config import ApplicationConfig
from src.domain.asset import Chain
from src.domain.key_derivation import SeedMaterial, derive

logger = logging.getLogger(__name__)


def generate_operator_key(chain: Chain) -> tuple[str, str]:
    """Return (serialized private key, address) for a fresh operator wallet"""
    if chain == Chain.EVM:
        account = Account.create()
        return account.key.hex(), account.address
    keypair = Keypair()
    return str(keypair), str(keypair.pubkey())


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Generate mnemonic and operator wallet")
    parser.add_argument("--chain", choices=[c.value for c in Chain], default=ApplicationConfig.CHAIN)
    parser.add_argument("--output", default=ApplicationConfig.SECRETS_FILE, help="Secrets YAML path")
    args = parser.parse_args()

    if os.path.exists(args.output):
        logger.error(f"{args.output} already exists; refusing to overwrite existing key material")
        sys.exit(1)

    chain = Chain(args.chain)
    mnemonic = str(Bip39MnemonicGenerator().FromWordsNum(Bip39WordsNum.WORDS_NUM_24))
    operator_key, operator_address = generate_operator_key(chain)

    with open(args.output, "w") as f:
        yaml.safe_dump({"mnemonic": mnemonic, "operator_private_key": operator_key}, f)
    os.chmod(args.output, 0o600)

    first = derive(SeedMaterial.from_mnemonic(mnemonic), 0, chain)
    print(f"Secrets written to {args.output}")
    print(f"  Chain: {chain.value}")
    print(f"  Operator address (fund this for fee top-ups): {operator_address}")
    print(f"  First invoice address ({first.derivation_path}): {first.address}")
    print("Back up the mnemonic offline; it controls every invoice address.")


if __name__ == "__main__":
    main()
