import pytest

from backend.app_setup.exceptions import InvalidTransition, ValidationFailed
from backend.models import OrderStatus
from backend.orders.transitions import ALLOWED_TRANSITIONS, can_transition, ensure_transition


@pytest.mark.parametrize("current,target", [
    ("PENDING", "CONFIRMED"),
    ("PENDING", "CANCELLED"),
    ("CONFIRMED", "SHIPPED"),
    ("CONFIRMED", "CANCELLED"),
    ("SHIPPED", "DELIVERED"),
    ("SHIPPED", "CANCELLED"),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current, target) == OrderStatus(target)


@pytest.mark.parametrize("current,target", [
    ("DELIVERED", "CONFIRMED"),
    ("CANCELLED", "PENDING"),
    ("CONFIRMED", "PENDING"),
    ("PENDING", "SHIPPED"),
    ("SHIPPED", "CONFIRMED"),
])
def test_rejected_transitions_name_both_states(current, target):
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition(current, target)
    assert exc.value.status_code == 400
    assert current in exc.value.message and target in exc.value.message


def test_terminal_states_have_no_exit():
    assert ALLOWED_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
    assert ALLOWED_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


def test_status_is_case_insensitive():
    assert ensure_transition("pending", "confirmed") == OrderStatus.CONFIRMED


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationFailed):
        ensure_transition("PENDING", "LOST")
