import importlib
import uuid
import warnings

import pytest

from handover.models import Product, Student
from handover.schemas import BatchStatusUpdate, ProductRead, StudentSummary


@pytest.mark.parametrize(
    "module", ["handover.schemas.order", "handover.schemas.product", "handover.schemas.student"]
)
def test_schema_modules_define_without_deprecation_warnings(module):
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        importlib.reload(importlib.import_module(module))


def test_batch_update_accepts_field_names_and_aliases():
    student_id, product_id = uuid.uuid4(), uuid.uuid4()

    by_alias = BatchStatusUpdate.model_validate(
        {"studentIds": [str(student_id)], "productId": str(product_id), "status": "PAID"}
    )
    by_name = BatchStatusUpdate(student_ids=[student_id], product_id=product_id, status="PAID")

    assert by_alias == by_name


def test_read_models_load_from_orm_rows(db, seed):
    product = db.get(Product, seed.product_id)
    student = db.get(Student, seed.student_ids[0])

    assert ProductRead.model_validate(product).name == "Anatomy Notes Vol. 2"
    assert StudentSummary.model_validate(student).name == "Ahmed Samir"
