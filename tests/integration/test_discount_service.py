"""
Integration tests for discount administration.
"""

from datetime import timedelta

import pytest

from common.exceptions import (
    DuplicateError, NotFoundError, UsageLimitExceededError, ValidationError,
)
from sqlalchemy.exc import IntegrityError

from modules.discount.models import Discount, DiscountKind, DiscountTarget
from modules.discount.service import discount_service


def promo_data(**overrides):
    data = {
        "name": "Weekend Sale",
        "kind": "promo",
        "discount_type": "percentage",
        "value": 10,
        "stack_policy": "best_only",
        "applies_to_all_products": True,
    }
    data.update(overrides)
    return data


class TestCreate:

    def test_create_global_promo(self, session):
        discount = discount_service.create_discount(session, promo_data())
        assert discount.id is not None
        assert discount.applies_to_all_products is True
        assert discount.usage_count == 0
        assert discount.discount_display == "10%"

    def test_create_with_products(self, session, product_factory):
        p1 = product_factory()
        p2 = product_factory(name="Other")
        discount = discount_service.create_discount(
            session, promo_data(applies_to_all_products=False, product_ids=[p2.id, p1.id, p1.id]),
        )
        assert sorted(discount.product_ids) == sorted([p1.id, p2.id])

    def test_unknown_product_target(self, session):
        with pytest.raises(NotFoundError):
            discount_service.create_discount(
                session, promo_data(applies_to_all_products=False, product_ids=[999]),
            )

    def test_requires_target(self, session):
        with pytest.raises(ValidationError) as exc:
            discount_service.create_discount(session, promo_data(applies_to_all_products=False))
        assert exc.value.field == "product_ids"

    @pytest.mark.parametrize("overrides,field", [
        ({"name": "  "}, "name"),
        ({"kind": "seasonal"}, "kind"),
        ({"discount_type": "bogo"}, "discount_type"),
        ({"stack_policy": "all"}, "stack_policy"),
        ({"value": -1}, "value"),
        ({"value": 101}, "value"),
        ({"value": None}, "value"),
        ({"usage_limit": 0}, "usage_limit"),
        ({"min_order_subtotal": -5}, "min_order_subtotal"),
    ])
    def test_invalid_fields(self, session, overrides, field):
        with pytest.raises(ValidationError) as exc:
            discount_service.create_discount(session, promo_data(**overrides))
        assert exc.value.field == field

    def test_fixed_value_above_100(self, session):
        discount = discount_service.create_discount(session, promo_data(discount_type="fixed", value=25_000))
        assert discount.discount_display == "Rp 25.000"

    def test_inverted_window(self, session, now):
        with pytest.raises(ValidationError):
            discount_service.create_discount(
                session, promo_data(starts_at=now, ends_at=now - timedelta(hours=1)),
            )

    def test_equal_start_and_end_rejected(self, session, now):
        with pytest.raises(ValidationError):
            discount_service.create_discount(session, promo_data(starts_at=now, ends_at=now))


class TestAutoshipRules:

    def test_autoship_must_target_all(self, session, product_factory):
        product = product_factory()
        with pytest.raises(ValidationError):
            discount_service.create_discount(
                session,
                promo_data(kind="autoship", applies_to_all_products=False, product_ids=[product.id]),
            )

    def test_single_active_global_autoship(self, session):
        discount_service.create_discount(session, promo_data(name="Autoship 5%", kind="autoship", value=5))
        with pytest.raises(DuplicateError):
            discount_service.create_discount(session, promo_data(name="Autoship 10%", kind="autoship"))

    def test_inactive_second_autoship_allowed(self, session):
        discount_service.create_discount(session, promo_data(name="Autoship 5%", kind="autoship", value=5))
        second = discount_service.create_discount(
            session, promo_data(name="Autoship 10%", kind="autoship", active=False),
        )
        assert second.active is False
        with pytest.raises(DuplicateError):
            discount_service.toggle_active(session, second.id, True)

    def test_autoship_targets_cannot_be_narrowed(self, session, product_factory):
        product = product_factory()
        discount = discount_service.create_discount(session, promo_data(kind="autoship"))
        with pytest.raises(ValidationError):
            discount_service.set_targets(session, discount.id, product_ids=[product.id])

    def test_unique_index_rejects_second_active_autoship(self, session, discount_factory):
        discount_factory(name="Autoship 5%", all_products=True, kind=DiscountKind.AUTOSHIP.value)
        session.add(Discount(
            name="Autoship 10%", kind=DiscountKind.AUTOSHIP.value,
            discount_type="percentage", value=10, active=True,
        ))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_unique_index_allows_inactive_duplicates(self, session, discount_factory):
        discount_factory(name="Autoship 5%", all_products=True, kind=DiscountKind.AUTOSHIP.value)
        discount_factory(name="Old autoship", all_products=True, kind=DiscountKind.AUTOSHIP.value, active=False)
        discount_factory(name="Older autoship", all_products=True, kind=DiscountKind.AUTOSHIP.value, active=False)
        assert session.query(Discount).count() == 3

    def test_concurrent_create_becomes_duplicate_error(self, session, discount_factory, monkeypatch):
        # another writer committed between our check and our flush
        discount_factory(name="Autoship 5%", all_products=True, kind=DiscountKind.AUTOSHIP.value)
        monkeypatch.setattr(discount_service, "has_active_global_autoship", lambda *a, **kw: False)
        with pytest.raises(DuplicateError):
            discount_service.create_discount(session, promo_data(name="Autoship 10%", kind="autoship"))

    def test_concurrent_toggle_becomes_duplicate_error(self, session, discount_factory, monkeypatch):
        discount_factory(name="Autoship 5%", all_products=True, kind=DiscountKind.AUTOSHIP.value)
        idle = discount_factory(
            name="Autoship 10%", all_products=True, kind=DiscountKind.AUTOSHIP.value, active=False,
        )
        monkeypatch.setattr(discount_service, "has_active_global_autoship", lambda *a, **kw: False)
        with pytest.raises(DuplicateError):
            discount_service.toggle_active(session, idle.id, True)


class TestUpdate:

    def test_toggle(self, session):
        discount = discount_service.create_discount(session, promo_data())
        assert discount_service.toggle_active(session, discount.id, False).active is False
        assert discount_service.toggle_active(session, discount.id, True).active is True

    def test_set_targets(self, session, product_factory):
        product = product_factory()
        discount = discount_service.create_discount(session, promo_data())
        updated = discount_service.set_targets(session, discount.id, product_ids=[product.id])
        assert updated.applies_to_all_products is False
        assert updated.product_ids == [product.id]

    def test_missing_discount(self, session):
        with pytest.raises(NotFoundError):
            discount_service.get(session, 404)

    def test_list_filters(self, session):
        discount_service.create_discount(session, promo_data(name="A"))
        discount_service.create_discount(session, promo_data(name="B", active=False))
        discount_service.create_discount(session, promo_data(name="C", kind="autoship"))
        assert {d.name for d in discount_service.list_discounts(session)} == {"A", "B", "C"}
        assert {d.name for d in discount_service.list_discounts(session, active=True)} == {"A", "C"}
        assert {d.name for d in discount_service.list_discounts(session, kind="autoship")} == {"C"}

    def test_to_dict(self, session):
        discount = discount_service.create_discount(session, promo_data(usage_limit=3))
        data = discount_service.to_dict(discount)
        assert data["name"] == "Weekend Sale"
        assert data["usage_limit"] == 3
        assert data["usage_count"] == 0
        assert data["usage_remaining"] == 3
        assert data["applies_to_all_products"] is True
        assert data["product_ids"] == []


class TestEditAndDelete:

    def test_partial_update(self, session):
        discount = discount_service.create_discount(session, promo_data(usage_limit=5))
        updated = discount_service.update_discount(session, discount.id, {"value": 15, "name": "Flash Sale"})
        assert updated.value == 15
        assert updated.name == "Flash Sale"
        assert updated.usage_limit == 5
        assert updated.stack_policy == "best_only"
        assert updated.applies_to_all_products is True
        assert updated.updated_at is not None

    def test_merged_fields_are_validated(self, session):
        discount = discount_service.create_discount(session, promo_data(discount_type="fixed", value=25_000))
        with pytest.raises(ValidationError) as exc:
            discount_service.update_discount(session, discount.id, {"discount_type": "percentage"})
        assert exc.value.field == "value"

    def test_window_checked_against_stored_start(self, session, now):
        discount = discount_service.create_discount(session, promo_data(starts_at=now))
        with pytest.raises(ValidationError) as exc:
            discount_service.update_discount(session, discount.id, {"ends_at": now - timedelta(days=1)})
        assert exc.value.field == "ends_at"

    def test_clear_optional_field(self, session):
        discount = discount_service.create_discount(session, promo_data(usage_limit=5))
        updated = discount_service.update_discount(session, discount.id, {"usage_limit": None})
        assert updated.usage_limit is None

    def test_retarget(self, session, product_factory):
        product = product_factory()
        discount = discount_service.create_discount(session, promo_data())
        updated = discount_service.update_discount(session, discount.id, {"product_ids": [product.id]})
        assert updated.applies_to_all_products is False
        assert updated.product_ids == [product.id]

    def test_become_autoship_while_one_is_active(self, session):
        discount_service.create_discount(session, promo_data(name="Autoship 5%", kind="autoship", value=5))
        promo = discount_service.create_discount(session, promo_data())
        with pytest.raises(DuplicateError):
            discount_service.update_discount(session, promo.id, {"kind": "autoship"})

    def test_reactivate_second_autoship(self, session):
        discount_service.create_discount(session, promo_data(name="Autoship 5%", kind="autoship", value=5))
        idle = discount_service.create_discount(
            session, promo_data(name="Autoship 10%", kind="autoship", active=False),
        )
        with pytest.raises(DuplicateError):
            discount_service.update_discount(session, idle.id, {"active": True})

    def test_edit_the_active_autoship_itself(self, session):
        autoship = discount_service.create_discount(session, promo_data(name="Autoship", kind="autoship", value=5))
        updated = discount_service.update_discount(session, autoship.id, {"value": 7})
        assert updated.value == 7

    def test_autoship_cannot_be_narrowed(self, session, product_factory):
        product = product_factory()
        autoship = discount_service.create_discount(session, promo_data(kind="autoship"))
        with pytest.raises(ValidationError):
            discount_service.update_discount(
                session, autoship.id, {"applies_to_all_products": False, "product_ids": [product.id]},
            )

    def test_narrowed_promo_cannot_become_autoship(self, session, product_factory):
        product = product_factory()
        promo = discount_service.create_discount(
            session, promo_data(applies_to_all_products=False, product_ids=[product.id]),
        )
        with pytest.raises(ValidationError):
            discount_service.update_discount(session, promo.id, {"kind": "autoship"})

    def test_update_unknown(self, session):
        with pytest.raises(NotFoundError):
            discount_service.update_discount(session, 404, {"value": 5})

    def test_delete_removes_targets(self, session, product_factory):
        product = product_factory()
        discount = discount_service.create_discount(
            session, promo_data(applies_to_all_products=False, product_ids=[product.id]),
        )
        discount_id = discount.id
        discount_service.delete_discount(session, discount_id)
        assert session.query(Discount).filter_by(id=discount_id).first() is None
        assert session.query(DiscountTarget).filter_by(discount_id=discount_id).count() == 0

    def test_delete_unknown(self, session):
        with pytest.raises(NotFoundError):
            discount_service.delete_discount(session, 404)


class TestUsage:

    def test_record_until_limit(self, session):
        discount = discount_service.create_discount(session, promo_data(usage_limit=2))
        discount_service.record_usage(session, discount.id)
        discount_service.record_usage(session, discount.id)
        assert discount.usage_count == 2
        with pytest.raises(UsageLimitExceededError):
            discount_service.record_usage(session, discount.id)

    def test_unlimited(self, session):
        discount = discount_service.create_discount(session, promo_data())
        for _ in range(5):
            discount_service.record_usage(session, discount.id)
        assert discount.usage_count == 5

    def test_unknown(self, session):
        with pytest.raises(NotFoundError):
            discount_service.record_usage(session, 999)
