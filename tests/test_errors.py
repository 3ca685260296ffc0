"""
错误类型测试
"""
from payout_core.utils.errors import (
    ConfigurationError,
    DataIntegrityError,
    NotFoundError,
    PayoutException,
    PersistenceError,
)


def test_errors_share_base_class():
    for error in (
        NotFoundError(code="SELLER_NOT_FOUND", resource="seller 1"),
        ConfigurationError(code="PAYOUT_SCHEDULE_MISSING", detail="no schedule"),
        DataIntegrityError(code="REFUND_EXCEEDS_PURCHASE", detail="too much"),
        PersistenceError(),
    ):
        assert isinstance(error, PayoutException)


def test_not_found_detail():
    error = NotFoundError(code="SELLER_NOT_FOUND", resource="seller 42")

    assert str(error) == "seller 42 not found"
    assert error.status == 404


def test_to_dict_renders_problem_detail():
    error = ConfigurationError(code="PAYOUT_SCHEDULE_MISSING", detail="seller 3 has no payout schedule")

    assert error.to_dict() == {
        "ok": False,
        "error": {
            "type": "about:blank",
            "title": "Configuration Error",
            "status": 409,
            "detail": "seller 3 has no payout schedule",
            "code": "PAYOUT_SCHEDULE_MISSING",
        },
    }


def test_persistence_error_defaults():
    error = PersistenceError()

    assert error.code == "TRANSACTION_FAILED"
    assert error.title == "Persistence Error"


def test_data_integrity_error_reports_purchase_id():
    error = DataIntegrityError(code="REFUND_EXCEEDS_PURCHASE", detail="refund too large", purchase_id=7)

    payload = error.to_dict()

    assert payload["error"]["status"] == 422
    assert payload["error"]["code"] == "REFUND_EXCEEDS_PURCHASE"
    assert payload["error"]["purchase_id"] == 7
