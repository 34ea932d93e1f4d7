import pytest

from orderflow.core.exceptions import InvalidStateError
from orderflow.models.order import OrderStatus
from orderflow.services.order_state_machine import (
    can_transition,
    get_allowed_transitions,
    get_transition_action,
    is_terminal,
    validate_transition,
)


class TestTransitions:
    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PENDING, OrderStatus.ON_THE_WAY),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        validate_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PENDING, OrderStatus.DELIVERED),
        (OrderStatus.ON_THE_WAY, OrderStatus.CANCELLED),
        (OrderStatus.ON_THE_WAY, OrderStatus.ON_THE_WAY),
        (OrderStatus.ON_THE_WAY, OrderStatus.PENDING),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidStateError, match="Allowed transitions"):
            validate_transition(current, target)

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_states_reject_everything(self, terminal):
        assert is_terminal(terminal)
        assert get_allowed_transitions(terminal) == []
        for target in OrderStatus:
            with pytest.raises(InvalidStateError, match="terminal"):
                validate_transition(terminal, target)

    def test_non_terminal(self):
        assert not is_terminal(OrderStatus.PENDING)
        assert not is_terminal(OrderStatus.ON_THE_WAY)

    def test_terminal_check_drives_rejection_message(self, monkeypatch):
        import orderflow.services.order_state_machine as machine

        monkeypatch.setattr(machine, "is_terminal", lambda status: status == OrderStatus.ON_THE_WAY)
        with pytest.raises(InvalidStateError, match="terminal"):
            validate_transition(OrderStatus.ON_THE_WAY, OrderStatus.CANCELLED)

    def test_action_names(self):
        assert get_transition_action(OrderStatus.PENDING, OrderStatus.ON_THE_WAY) == "Claim"
        assert get_transition_action(OrderStatus.DELIVERED, OrderStatus.PENDING) == "delivered -> pending"
