import uuid

import pytest

from conftest import count_orders
from handover.models import OrderStatus, TargetStatus
from handover.services import order_service, redemption_service
from handover.services.exceptions import ErrorKind, OrderRuleViolation


def _submit(db, seed, student_index=0, product_id=None, **kwargs):
    return order_service.submit_evidence(
        db,
        student_id=seed.student_ids[student_index],
        product_id=product_id or seed.product_id,
        evidence_ref=kwargs.pop("evidence_ref", "payments/proof.jpg"),
        **kwargs,
    )


def test_submit_evidence_creates_pending_order_without_code(db, seed):
    order = _submit(db, seed, activation_phone="01012345678")

    assert order.status is OrderStatus.PENDING_CONFIRMATION
    assert order.redemption_code is None
    assert order.evidence_ref == "payments/proof.jpg"
    assert order.activation_phone == "01012345678"


def test_resubmission_after_decline_updates_same_row(db, seed):
    first = _submit(db, seed, activation_phone="01012345678")
    first_created = first.created_at
    order_service.decline(db, order_id=first.order_id)

    second = _submit(db, seed, evidence_ref="payments/second.jpg")

    assert second.order_id == first.order_id
    assert second.status is OrderStatus.PENDING_CONFIRMATION
    assert second.evidence_ref == "payments/second.jpg"
    assert second.activation_phone == "01012345678"
    assert second.created_at >= first_created
    assert count_orders(db, student_id=seed.student_ids[0], product_id=seed.product_id) == 1


def test_resubmission_over_paid_order_returns_to_pending(db, seed):
    order = _submit(db, seed)
    paid = order_service.confirm(db, order_id=order.order_id)
    code = paid.redemption_code

    again = _submit(db, seed, evidence_ref="payments/again.jpg")

    assert again.status is OrderStatus.PENDING_CONFIRMATION
    assert again.evidence_ref == "payments/again.jpg"
    assert again.redemption_code == code


def test_resubmission_over_delivered_order_returns_to_pending(db, seed):
    order_service.set_status(
        db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.DELIVERED
    )

    again = _submit(db, seed, evidence_ref="k")

    assert again.status is OrderStatus.PENDING_CONFIRMATION
    assert again.evidence_ref == "k"


def test_resubmission_over_paid_order_rejected_when_disabled(db, seed):
    order = _submit(db, seed)
    order_service.confirm(db, order_id=order.order_id)

    with pytest.raises(OrderRuleViolation) as excinfo:
        _submit(db, seed, evidence_ref="payments/again.jpg", allow_after_payment=False)

    assert excinfo.value.kind is ErrorKind.INVALID_TRANSITION
    stored = order_service.find_order(db, seed.student_ids[0], seed.product_id)
    assert stored.status is OrderStatus.PAID
    assert stored.evidence_ref == "payments/proof.jpg"


def test_submit_evidence_unknown_student(db, seed):
    with pytest.raises(OrderRuleViolation) as excinfo:
        order_service.submit_evidence(
            db,
            student_id=uuid.uuid4(),
            product_id=seed.product_id,
            evidence_ref="payments/proof.jpg",
        )
    assert excinfo.value.kind is ErrorKind.NOT_FOUND
    assert excinfo.value.status_code == 404


def test_confirm_assigns_code_and_is_idempotent(db, seed):
    order = _submit(db, seed)

    paid = order_service.confirm(db, order_id=order.order_id)
    code = paid.redemption_code
    assert paid.status is OrderStatus.PAID
    assert uuid.UUID(code)

    again = order_service.confirm(db, order_id=order.order_id)
    assert again.status is OrderStatus.PAID
    assert again.redemption_code == code


def test_decline_keeps_existing_code(db, seed):
    order = _submit(db, seed)
    code = order_service.confirm(db, order_id=order.order_id).redemption_code

    declined = order_service.decline(db, order_id=order.order_id)

    assert declined.status is OrderStatus.DECLINED
    assert declined.redemption_code == code


def test_confirm_after_decline_wins(db, seed):
    order = _submit(db, seed)
    order_service.decline(db, order_id=order.order_id)

    paid = order_service.confirm(db, order_id=order.order_id)

    assert paid.status is OrderStatus.PAID
    assert paid.redemption_code is not None


def test_delivered_order_cannot_be_confirmed_or_declined(db, seed):
    order_service.set_status(
        db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.DELIVERED
    )
    order = order_service.find_order(db, seed.student_ids[0], seed.product_id)

    for transition in (order_service.confirm, order_service.decline):
        with pytest.raises(OrderRuleViolation) as excinfo:
            transition(db, order_id=order.order_id)
        assert excinfo.value.kind is ErrorKind.INVALID_TRANSITION

    assert order_service.find_order(db, seed.student_ids[0], seed.product_id).status is OrderStatus.DELIVERED


def test_confirm_unknown_order(db, seed):
    with pytest.raises(OrderRuleViolation) as excinfo:
        order_service.confirm(db, order_id=uuid.uuid4())
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_confirm_requires_product_ownership(db, seed):
    order = _submit(db, seed)

    with pytest.raises(OrderRuleViolation) as excinfo:
        order_service.confirm(db, order_id=order.order_id, operator_id=seed.rival_id)

    assert excinfo.value.kind is ErrorKind.UNAUTHORIZED
    assert order_service.find_order(db, seed.student_ids[0], seed.product_id).status is OrderStatus.PENDING_CONFIRMATION


def test_confirm_all_pending_only_touches_pending_rows_of_product(db, seed):
    for index in range(3):
        _submit(db, seed, student_index=index)
    declined = _submit(db, seed, student_index=3)
    order_service.decline(db, order_id=declined.order_id)
    other = _submit(db, seed, student_index=0, product_id=seed.course_id)

    count = order_service.confirm_all_pending(db, product_id=seed.product_id, operator_id=seed.operator_id)

    assert count == 3
    codes = set()
    for index in range(3):
        order = order_service.find_order(db, seed.student_ids[index], seed.product_id)
        assert order.status is OrderStatus.PAID
        assert order.redemption_code
        codes.add(order.redemption_code)
    assert len(codes) == 3
    assert order_service.find_order(db, seed.student_ids[3], seed.product_id).status is OrderStatus.DECLINED
    other = order_service.find_order(db, other.student_id, seed.course_id)
    assert other.status is OrderStatus.PENDING_CONFIRMATION
    assert other.redemption_code is None


def test_confirm_all_pending_keeps_existing_codes(db, seed):
    order_service.set_status(db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.PAID)
    code = order_service.find_order(db, seed.student_ids[0], seed.product_id).redemption_code
    order_service.set_status(
        db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.PENDING_CONFIRMATION
    )

    assert order_service.confirm_all_pending(db, product_id=seed.product_id) == 1
    assert order_service.find_order(db, seed.student_ids[0], seed.product_id).redemption_code == code


def test_set_status_unpaid_deletes_and_next_paid_gets_new_code(db, seed):
    student_id = seed.student_ids[1]
    first = order_service.set_status(db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.PAID)
    old_code = first.redemption_code

    assert order_service.set_status(
        db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.UNPAID
    ) is None
    assert count_orders(db, student_id=student_id, product_id=seed.product_id) == 0

    second = order_service.set_status(db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.PAID)
    assert second.redemption_code
    assert second.redemption_code != old_code


def test_set_status_unpaid_without_order_is_noop(db, seed):
    assert order_service.set_status(
        db, student_id=seed.student_ids[2], product_id=seed.product_id, status=TargetStatus.UNPAID
    ) is None
    assert count_orders(db) == 0


def test_set_status_never_replaces_code(db, seed):
    student_id = seed.student_ids[0]
    code = order_service.set_status(
        db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.DELIVERED
    ).redemption_code
    assert code

    for target in (TargetStatus.PENDING_CONFIRMATION, TargetStatus.DECLINED, TargetStatus.PAID, TargetStatus.DELIVERED):
        order = order_service.set_status(db, student_id=student_id, product_id=seed.product_id, status=target)
        assert order.status.value == target.value
        assert order.redemption_code == code

    assert count_orders(db, student_id=student_id, product_id=seed.product_id) == 1


def test_set_status_pending_does_not_generate_code(db, seed):
    order = order_service.set_status(
        db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.DECLINED
    )
    assert order.status is OrderStatus.DECLINED
    assert order.redemption_code is None


def test_set_status_checks_ownership(db, seed):
    with pytest.raises(OrderRuleViolation) as excinfo:
        order_service.set_status(
            db,
            student_id=seed.student_ids[0],
            product_id=seed.foreign_product_id,
            status=TargetStatus.PAID,
            operator_id=seed.operator_id,
        )
    assert excinfo.value.kind is ErrorKind.UNAUTHORIZED
    assert count_orders(db) == 0


def test_get_student_order_resolves_evidence(db, seed, storage):
    _submit(db, seed)

    order, url = order_service.get_student_order(
        db, storage, student_id=seed.student_ids[0], product_id=seed.product_id, ttl_seconds=120
    )

    assert order.status is OrderStatus.PENDING_CONFIRMATION
    assert url == "https://storage.test/payments/proof.jpg?ttl=120"


def test_get_student_order_absent(db, seed, storage):
    order, url = order_service.get_student_order(
        db, storage, student_id=seed.student_ids[0], product_id=seed.product_id
    )
    assert order is None
    assert url is None


def test_override_after_delivery_clears_delivery_fields(db, seed):
    student_id = seed.student_ids[0]
    code = order_service.set_status(
        db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.PAID
    ).redemption_code
    assert redemption_service.redeem(db, code=code, operator_id=seed.operator_id).success
    delivered = order_service.find_order(db, student_id, seed.product_id)
    assert delivered.delivered_at is not None
    assert delivered.delivered_by == seed.operator_id

    reverted = order_service.set_status(db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.PAID)

    assert reverted.status is OrderStatus.PAID
    assert reverted.delivered_at is None
    assert reverted.delivered_by is None


def test_repeated_delivered_override_keeps_delivery_time(db, seed):
    student_id = seed.student_ids[0]
    first = order_service.set_status(
        db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.DELIVERED
    ).delivered_at
    assert first is not None

    again = order_service.set_status(db, student_id=student_id, product_id=seed.product_id, status=TargetStatus.DELIVERED)

    assert again.delivered_at == first


def test_resubmission_after_delivery_clears_delivery_fields(db, seed):
    order_service.set_status(
        db, student_id=seed.student_ids[0], product_id=seed.product_id, status=TargetStatus.DELIVERED
    )

    again = _submit(db, seed)

    assert again.status is OrderStatus.PENDING_CONFIRMATION
    assert again.delivered_at is None
