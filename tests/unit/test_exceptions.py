"""
Unit tests for the exception system.

Covers the error classes, the factory functions and correlation ids.
"""

import pytest

from rental_core.enums import ContractStatus
from rental_core.exceptions import (
    BaseError,
    ConflictError,
    ErrorCode,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    clear_correlation_id,
    duplicate,
    get_correlation_id,
    invalid_transition,
    not_found,
    permission_denied,
    set_correlation_id,
    validation_failed,
)


@pytest.fixture(autouse=True)
def reset_correlation():
    clear_correlation_id()
    yield
    clear_correlation_id()


class TestBaseError:
    def test_defaults(self):
        error = BaseError("Something broke")

        assert error.message == "Something broke"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.context["error_id"] == error.error_id
        assert str(error) == "Something broke"

    def test_to_dict_hides_internal_keys(self):
        cause = KeyError("room")
        error = BaseError("Wrapped", cause=cause, room_id="r-1")

        body = error.to_dict()

        assert body["error"]["code"] == "1000"
        assert body["error"]["context"] == {"room_id": "r-1"}
        assert "cause" not in body["error"]

    def test_to_dict_with_cause(self):
        error = BaseError("Wrapped", cause=ValueError("bad"))

        cause = error.to_dict(include_cause=True)["error"]["cause"]

        assert cause == {"type": "ValueError", "message": "bad"}

    def test_correlation_id_is_attached(self):
        set_correlation_id("corr-42")

        error = BaseError("With correlation")

        assert error.to_dict()["error"]["correlation_id"] == "corr-42"

    def test_add_context(self):
        error = BaseError("x").add_context(contract_id="c-1")

        assert error.context["contract_id"] == "c-1"


class TestErrorClasses:
    @pytest.mark.parametrize(
        "error,status,code",
        [
            (ValidationError("bad", field="phone"), 400, ErrorCode.VALIDATION_FAILED),
            (ConflictError("held"), 409, ErrorCode.CONFLICT),
            (InvalidStateError("closed", current_state="TERMINATED"), 400, ErrorCode.PRECONDITION_FAILED),
            (not_found("Room", room_id="r-1"), 404, ErrorCode.NOT_FOUND),
            (duplicate("Tenant", phone="0810000000"), 409, ErrorCode.DUPLICATE),
            (permission_denied("run_cron", "cron"), 401, ErrorCode.PERMISSION_DENIED),
        ],
    )
    def test_status_and_code(self, error, status, code):
        assert isinstance(error, BaseError)
        assert error.status_code == status
        assert error.error_code == code

    def test_validation_error_keeps_field(self):
        assert ValidationError("bad", field="phone").context["field"] == "phone"

    def test_not_found_message(self):
        error = not_found("Contract", contract_id="c-9")

        assert isinstance(error, NotFoundError)
        assert error.message == "Contract not found: contract_id=c-9"
        assert error.context["resource_type"] == "Contract"

    def test_validation_failed(self):
        error = validation_failed("amount", -5, "must be greater than 0")

        assert error.message == "Validation failed for amount: must be greater than 0"
        assert error.context["value"] == "-5"
        assert error.context["reason"] == "must be greater than 0"


class TestInvalidTransition:
    def test_enum_states_become_values(self):
        error = invalid_transition(
            "contract", ContractStatus.DRAFT, ContractStatus.ACTIVE, contract_id="c-1"
        )

        assert isinstance(error, InvalidTransitionError)
        assert error.from_state == "DRAFT"
        assert error.to_state == "ACTIVE"
        assert error.message == "Invalid contract transition: DRAFT -> ACTIVE"
        assert error.error_code == ErrorCode.INVALID_STATE_TRANSITION
        assert error.context["contract_id"] == "c-1"


class TestCorrelationId:
    def test_set_get_clear(self):
        assert get_correlation_id() is None

        set_correlation_id("abc")
        assert get_correlation_id() == "abc"

        clear_correlation_id()
        assert get_correlation_id() is None
