"""Integration tests for Invoice API endpoints"""

import pytest
from httpx import AsyncClient

from src.adapter.repositories import SqlAlchemyInvoiceRepository
from src.domain.invoice import InvoiceStatus
from tests.fakes import make_invoice

FIRST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SECOND_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


async def store_invoice(db_session, seed, index, status=InvoiceStatus.PENDING):
    invoice = await SqlAlchemyInvoiceRepository(db_session).create_if_absent(
        make_invoice(seed, index, status=status)
    )
    await db_session.commit()
    return invoice


class TestIssueInvoiceAPI:
    """POST /invoices"""

    @pytest.mark.asyncio
    async def test_issue_native_invoice(self, client: AsyncClient, api_base):
        """First invoices take derivation indices 0 and 1"""
        # Act
        first = await client.post(api_base, json={"requested_amount": "0.05"})
        second = await client.post(api_base, json={"requested_amount": "1"})

        # Assert
        assert first.status_code == 201
        data = first.json()
        assert data["derivation_index"] == 0
        assert data["derivation_path"] == "m/44'/60'/0'/0/0"
        assert data["address"] == FIRST_ADDRESS
        assert data["status"] == "pending"
        assert data["token_symbol"] == "ETH"
        assert data["payment"]["uri"].startswith(f"ethereum:{FIRST_ADDRESS}")

        assert second.status_code == 201
        assert second.json()["address"] == SECOND_ADDRESS

    @pytest.mark.asyncio
    async def test_issue_rejects_zero_amount(self, client: AsyncClient, api_base):
        response = await client.post(api_base, json={"requested_amount": "0"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_AMOUNT"

    @pytest.mark.asyncio
    async def test_issue_token_requires_identifier(self, client: AsyncClient, api_base):
        response = await client.post(api_base, json={"asset_family": "token", "requested_amount": "5"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ASSET"

    @pytest.mark.asyncio
    async def test_issue_validation_error(self, client: AsyncClient, api_base):
        response = await client.post(api_base, json={"asset_family": "nft", "requested_amount": "5"})

        assert response.status_code == 422  # Pydantic validation error

    @pytest.mark.asyncio
    async def test_issue_with_unavailable_seed(self, client: AsyncClient, api_base, secret_store):
        secret_store.get_seed_material.side_effect = FileNotFoundError("Secrets file not found")

        response = await client.post(api_base, json={"requested_amount": "1"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INVALID_SEED"


class TestReadInvoicesAPI:
    """GET /invoices and GET /invoices/{id}"""

    @pytest.mark.asyncio
    async def test_get_invoice(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0)

        response = await client.get(f"{api_base}/{invoice.id}")

        assert response.status_code == 200
        assert response.json()["invoice_id"] == invoice.id

    @pytest.mark.asyncio
    async def test_get_missing_invoice(self, client: AsyncClient, api_base):
        response = await client.get(f"{api_base}/does-not-exist")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "INVOICE_NOT_FOUND"
        assert "message" in error

    @pytest.mark.asyncio
    async def test_list_filters_and_paginates(self, client: AsyncClient, api_base, db_session, seed):
        # Arrange
        for index in range(3):
            await store_invoice(db_session, seed, index)
        await store_invoice(db_session, seed, 3, status=InvoiceStatus.CANCELLED)

        # Act
        response = await client.get(api_base, params={"status": "pending", "limit": 2})

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["has_more"] is True
        assert [i["derivation_index"] for i in data["invoices"]] == [2, 1]

    @pytest.mark.asyncio
    async def test_list_rejects_bad_pagination(self, client: AsyncClient, api_base):
        response = await client.get(api_base, params={"limit": 0})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAGINATION"


class TestInvoiceStatusAPI:
    """PUT /invoices/{id}/status and DELETE /invoices/{id}"""

    @pytest.mark.asyncio
    async def test_cancel_and_reopen(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0)

        cancelled = await client.put(f"{api_base}/{invoice.id}/status", json={"status": "cancelled"})
        reopened = await client.put(f"{api_base}/{invoice.id}/status", json={"status": "pending"})

        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"
        assert reopened.status_code == 200
        assert reopened.json()["status"] == "pending"

    @pytest.mark.asyncio
    async def test_admin_cannot_mark_paid(self, client: AsyncClient, api_base, db_session, seed):
        """Paid is reachable only through payment detection"""
        invoice = await store_invoice(db_session, seed, 0)

        response = await client.put(f"{api_base}/{invoice.id}/status", json={"status": "paid"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_delete_paid_invoice_refused(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0, status=InvoiceStatus.PAID)

        response = await client.delete(f"{api_base}/{invoice.id}")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVOICE_NOT_DELETABLE"

    @pytest.mark.asyncio
    async def test_delete_pending_invoice(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0)

        response = await client.delete(f"{api_base}/{invoice.id}")
        follow_up = await client.get(f"{api_base}/{invoice.id}")

        assert response.status_code == 200
        assert follow_up.status_code == 404


class TestRedeliverAPI:
    """POST /invoices/{id}/redeliver"""

    @pytest.mark.asyncio
    async def test_redeliver_paid_invoice(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0, status=InvoiceStatus.PAID)

        response = await client.post(f"{api_base}/{invoice.id}/redeliver")

        assert response.status_code == 202
        data = response.json()
        assert data["invoice_id"] == invoice.id
        assert data["status"] == "paid"

    @pytest.mark.asyncio
    async def test_redeliver_pending_invoice_refused(self, client: AsyncClient, api_base, db_session, seed):
        invoice = await store_invoice(db_session, seed, 0)

        response = await client.post(f"{api_base}/{invoice.id}/redeliver")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVOICE_NOT_PAID"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
