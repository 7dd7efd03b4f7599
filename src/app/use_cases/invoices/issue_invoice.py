"""IssueInvoice Use Case

Allocates the next derivation index, derives the deposit address and
creates a pending invoice. Touches no chain.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.derivation_counter_repository import DerivationCounterRepository
from src.domain.amount import parse_amount
from src.domain.asset import AssetFamily, AssetParams, Chain, NATIVE_SYMBOLS
from src.domain.errors import DuplicateInvoiceError, InvalidSeedError
from src.domain.invoice import Invoice
from src.domain.invoice_lifecycle import INITIAL_STATUS
from src.domain.key_derivation import SeedMaterial, derive
from .dtos import IssueInvoiceCommandDTO, InvoiceResponseDTO, to_invoice_response

logger = logging.getLogger(__name__)


class IssueInvoice:
    """
    Use Case: Issue a new invoice with its own deposit address

    Business Rules:
    1. Each invoice consumes exactly one derivation index from the chain's counter
    2. Indices are never reused, even if the invoice is later deleted
    3. The invoice is created with status=pending
    4. Token invoices must name the token; native invoices must not

    Flow:
    1. Validate asset and amount
    2. Atomically increment the derivation counter (index = value - 1)
    3. Derive the deposit address
    4. Create the invoice (retry once with a fresh id on collision)
    5. Commit transaction
    6. Return response with payment descriptor
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        counter_repo: DerivationCounterRepository,
        seed: SeedMaterial,
        chain: Chain,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.counter_repo = counter_repo
        self.seed = seed
        self.chain = Chain(chain)

    async def execute(self, command: IssueInvoiceCommandDTO) -> Result[InvoiceResponseDTO]:
        """
        Execute invoice issuance

        Args:
            command: IssueInvoiceCommandDTO with asset and requested amount

        Returns:
            Result[InvoiceResponseDTO]: Success with invoice details or error
        """
        # Step 1: Validate input
        try:
            parse_amount(command.requested_amount)
        except ValueError as e:
            return Return.err(
                Error(code="INVALID_AMOUNT", message="Requested amount is invalid", reason=str(e))
            )

        try:
            asset = AssetParams(
                family=command.asset_family,
                token_identifier=command.token_identifier or None,
                symbol=command.token_symbol,
            )
        except ValueError as e:
            return Return.err(
                Error(code="INVALID_ASSET", message="Asset parameters are invalid", reason=str(e))
            )

        try:
            # Step 2: Allocate derivation index
            counter_value = await self.counter_repo.increment(self.chain)
            index = counter_value - 1

            # Step 3: Derive deposit address (signer is discarded)
            wallet = derive(self.seed, index, self.chain)

            symbol = asset.symbol
            if symbol is None and asset.family == AssetFamily.NATIVE:
                symbol = NATIVE_SYMBOLS[self.chain]

            # Step 4: Create invoice
            created = None
            for attempt in range(2):
                invoice = Invoice(
                    chain=self.chain,
                    derivation_index=index,
                    derivation_path=wallet.derivation_path,
                    address=wallet.address,
                    asset_family=asset.family,
                    token_identifier=asset.token_identifier,
                    token_symbol=symbol,
                    requested_amount=command.requested_amount.strip(),
                    status=INITIAL_STATUS,
                )
                try:
                    created = await self.invoice_repo.create_if_absent(invoice)
                    break
                except DuplicateInvoiceError as e:
                    # Only a pre-checked id collision leaves the transaction
                    # usable, and only a new id can resolve it
                    if attempt == 1 or e.field != "id":
                        raise
                    logger.warning(f"Invoice id collision for index {index}, retrying with new id")

            # Step 5: Commit transaction
            await self.uow.commit()

            logger.info(
                f"Issued invoice {created.id} at index {index} "
                f"({asset.family.value} {command.requested_amount} {symbol or ''})"
            )

            # Step 6: Build response
            return Return.ok(to_invoice_response(created))

        except DuplicateInvoiceError as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="DUPLICATE_INVOICE", message="Failed to allocate a unique invoice", reason=str(e))
            )
        except InvalidSeedError as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="INVALID_SEED", message="Seed material is invalid", reason=str(e))
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="ISSUE_INVOICE_FAILED", message="Failed to issue invoice", reason=str(e))
            )
