"""Tests for the billing engine."""

import asyncio

import pytest
from beanie import PydanticObjectId

from stocksage.core.exceptions import InsufficientStockError, InvalidInputError, NotFoundError
from stocksage.models.bill import Bill, BillStatus, PaymentMethod
from stocksage.models.product import Product, StockStatus
from stocksage.schemas.bill import BillCreate
from stocksage.services import billing, inventory


def bill_request(*lines, **extra) -> BillCreate:
    data = {
        "customer_name": "Asha Rao",
        "items": [
            {"product_id": product.id, "product_name": product.name, "quantity": qty, "price": price}
            for product, qty, price in lines
        ],
    }
    data.update(extra)
    return BillCreate(**data)


async def quantity_of(product: Product) -> int:
    return (await Product.get(product.id)).quantity


class TestCreateBill:

    async def test_totals_and_stock(self, owner, make_product):
        product = await make_product(owner, quantity=5, min_stock_level=2)

        bill = await billing.create_bill(
            owner.id, bill_request((product, 3, 100), tax=10, discount=5)
        )

        assert bill.subtotal == 300
        assert bill.total == 305
        assert bill.status == BillStatus.PAID
        assert bill.payment_method == PaymentMethod.CASH

        stored = await Product.get(product.id)
        assert stored.quantity == 2
        assert stored.stock_status == StockStatus.LOW_STOCK

    async def test_multiple_lines(self, owner, make_product):
        tea = await make_product(owner, name="Green Tea", quantity=10)
        rice = await make_product(owner, name="Rice", quantity=4)

        bill = await billing.create_bill(owner.id, bill_request((tea, 2, 50), (rice, 4, 75.5)))

        assert [item.total for item in bill.items] == [100, 302]
        assert bill.subtotal == 402
        assert bill.total == 402
        assert await quantity_of(tea) == 8
        assert await quantity_of(rice) == 0

    async def test_snapshot_uses_catalog_name_and_request_price(self, owner, make_product):
        product = await make_product(owner, name="Green Tea", price=100)

        bill = await billing.create_bill(owner.id, bill_request((product, 1, 80)))

        item = bill.items[0]
        assert item.product_name == "Green Tea"
        assert item.price == 80
        assert item.total == 80

    async def test_snapshot_survives_product_edit(self, owner, make_product):
        product = await make_product(owner, name="Green Tea")
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 100)))

        await product.set({Product.name: "Matcha"})

        stored = await Bill.get(bill.id)
        assert stored.items[0].product_name == "Green Tea"

    async def test_insufficient_stock_changes_nothing(self, owner, make_product):
        product = await make_product(owner, quantity=2)

        with pytest.raises(InsufficientStockError, match="Available: 2"):
            await billing.create_bill(owner.id, bill_request((product, 5, 100)))

        assert await quantity_of(product) == 2
        assert await Bill.find_all().count() == 0

    async def test_later_insufficient_line_keeps_earlier_stock(self, owner, make_product):
        tea = await make_product(owner, name="Green Tea", quantity=10)
        rice = await make_product(owner, name="Rice", quantity=1)

        with pytest.raises(InsufficientStockError, match="Rice"):
            await billing.create_bill(owner.id, bill_request((tea, 3, 50), (rice, 2, 75)))

        assert await quantity_of(tea) == 10
        assert await quantity_of(rice) == 1

    async def test_deactivated_product_aborts_whole_bill(self, owner, make_product):
        valid = await make_product(owner, name="Green Tea", quantity=10)
        gone = await make_product(owner, name="Old Stock", quantity=10, is_active=False)

        with pytest.raises(NotFoundError, match="Old Stock"):
            await billing.create_bill(owner.id, bill_request((valid, 1, 100), (gone, 1, 100)))

        assert await quantity_of(valid) == 10
        assert await Bill.find_all().count() == 0

    async def test_other_account_product_not_found(self, owner, other_owner, make_product):
        foreign = await make_product(other_owner, quantity=10)

        with pytest.raises(NotFoundError):
            await billing.create_bill(owner.id, bill_request((foreign, 1, 100)))

        assert await quantity_of(foreign) == 10

    async def test_unknown_product_id(self, owner):
        request = BillCreate(
            customer_name="Asha Rao",
            items=[{"product_id": PydanticObjectId(), "product_name": "Ghost", "quantity": 1, "price": 1}],
        )
        with pytest.raises(NotFoundError, match="Product not found: Ghost"):
            await billing.create_bill(owner.id, request)

    async def test_repeated_lines_share_stock(self, owner, make_product):
        product = await make_product(owner, quantity=5)

        with pytest.raises(InsufficientStockError):
            await billing.create_bill(owner.id, bill_request((product, 3, 10), (product, 3, 10)))

        assert await quantity_of(product) == 5

    async def test_negative_total_rejected(self, owner, make_product):
        product = await make_product(owner, quantity=5)

        with pytest.raises(InvalidInputError, match="negative"):
            await billing.create_bill(owner.id, bill_request((product, 1, 10), discount=20))

        assert await quantity_of(product) == 5

    async def test_zero_total_allowed(self, owner, make_product):
        product = await make_product(owner, quantity=5)
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10), discount=10))
        assert bill.total == 0

    async def test_line_totals_are_kept_to_cents(self, owner, make_product):
        product = await make_product(owner, quantity=5)

        bill = await billing.create_bill(owner.id, bill_request((product, 3, 0.335)))

        assert bill.items[0].price == 0.335
        assert bill.items[0].total == 1.01
        assert bill.subtotal == sum(item.total for item in bill.items)

    async def test_initial_status_and_payment_method(self, owner, make_product):
        product = await make_product(owner)
        bill = await billing.create_bill(
            owner.id, bill_request((product, 1, 10), status="pending", payment_method="upi")
        )
        assert bill.status == BillStatus.PENDING
        assert bill.payment_method == PaymentMethod.UPI


class TestRollback:

    async def test_stock_drained_mid_bill_rolls_everything_back(self, owner, make_product, monkeypatch):
        tea = await make_product(owner, name="Green Tea", quantity=10)
        rice = await make_product(owner, name="Rice", quantity=5)

        real_decrement = inventory.decrement

        async def racing_decrement(product_id, owner_id, quantity):
            if product_id == rice.id:
                # Another till sells the rice first
                await inventory.adjust_quantity(rice.id, owner.id, 0, "set")
            return await real_decrement(product_id, owner_id, quantity)

        monkeypatch.setattr(inventory, "decrement", racing_decrement)

        with pytest.raises(InsufficientStockError, match="Rice"):
            await billing.create_bill(owner.id, bill_request((tea, 4, 10), (rice, 2, 20)))

        assert await quantity_of(tea) == 10
        assert await quantity_of(rice) == 0
        assert await Bill.find_all().count() == 0

    @pytest.mark.parametrize("failure", [RuntimeError("driver hiccup"), asyncio.CancelledError()])
    async def test_unexpected_failure_rolls_everything_back(self, owner, make_product, monkeypatch, failure):
        tea = await make_product(owner, name="Green Tea", quantity=10)
        rice = await make_product(owner, name="Rice", quantity=5)

        real_decrement = inventory.decrement

        async def failing_decrement(product_id, owner_id, quantity):
            if product_id == rice.id:
                raise failure
            return await real_decrement(product_id, owner_id, quantity)

        monkeypatch.setattr(inventory, "decrement", failing_decrement)

        with pytest.raises(type(failure)):
            await billing.create_bill(owner.id, bill_request((tea, 4, 10), (rice, 2, 20)))

        assert await quantity_of(tea) == 10
        assert await quantity_of(rice) == 5
        assert await Bill.find_all().count() == 0


class TestBillNumbers:

    async def test_numbers_are_sequential(self, owner, make_product):
        product = await make_product(owner, quantity=10)

        first = await billing.create_bill(owner.id, bill_request((product, 1, 10)))
        second = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        assert first.bill_number == "BILL-000001"
        assert second.bill_number == "BILL-000002"

    async def test_taken_number_is_skipped(self, owner, make_product):
        product = await make_product(owner, quantity=10)
        await Bill(
            bill_number="BILL-000001",
            customer_name="Imported",
            items=[],
            subtotal=0,
            total=0,
            owner_id=owner.id,
        ).insert()

        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        assert bill.bill_number == "BILL-000002"
        assert await Bill.find_all().count() == 2


class TestReads:

    async def test_get_bill_scoped_to_owner(self, owner, other_owner, make_product):
        product = await make_product(owner)
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        assert (await billing.get_bill(bill.id, owner.id)).id == bill.id
        with pytest.raises(NotFoundError, match="Bill not found"):
            await billing.get_bill(bill.id, other_owner.id)

    async def test_list_filters(self, owner, make_product):
        product = await make_product(owner, quantity=10)
        await billing.create_bill(owner.id, bill_request((product, 1, 10)))
        await billing.create_bill(
            owner.id, bill_request((product, 1, 10), customer_name="Vikram", status="pending")
        )

        bills, total = await billing.list_bills(owner.id)
        assert total == 2

        bills, total = await billing.list_bills(owner.id, status="pending")
        assert total == 1
        assert bills[0].customer_name == "Vikram"

        bills, total = await billing.list_bills(owner.id, search="vik")
        assert total == 1

        bills, total = await billing.list_bills(owner.id, page=2, limit=1)
        assert total == 2
        assert len(bills) == 1

    async def test_list_rejects_unknown_status(self, owner):
        with pytest.raises(InvalidInputError):
            await billing.list_bills(owner.id, status="refunded")


class TestUpdateStatus:

    async def test_valid_transitions(self, owner, make_product):
        product = await make_product(owner)
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        for status in ("pending", "cancelled", "paid"):
            updated = await billing.update_status(bill.id, owner.id, status)
            assert updated.status == BillStatus(status)
            assert (await Bill.get(bill.id)).status == BillStatus(status)

    async def test_invalid_status_leaves_bill_unchanged(self, owner, make_product):
        product = await make_product(owner)
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        with pytest.raises(InvalidInputError, match="Invalid status"):
            await billing.update_status(bill.id, owner.id, "refunded")

        assert (await Bill.get(bill.id)).status == BillStatus.PAID

    async def test_cancelling_does_not_restock(self, owner, make_product):
        product = await make_product(owner, quantity=5)
        bill = await billing.create_bill(owner.id, bill_request((product, 2, 10)))

        await billing.update_status(bill.id, owner.id, "cancelled")

        assert await quantity_of(product) == 3

    async def test_other_account(self, owner, other_owner, make_product):
        product = await make_product(owner)
        bill = await billing.create_bill(owner.id, bill_request((product, 1, 10)))

        with pytest.raises(NotFoundError):
            await billing.update_status(bill.id, other_owner.id, "cancelled")
