import pytest

from live_translate.domain.state import (
    ConnectionState,
    InvalidTransitionError,
    SessionState,
    validate_connection_transition,
    validate_transition,
)


class TestSessionTransitions:
    def test_idle_to_connecting(self):
        validate_transition(SessionState.IDLE, SessionState.CONNECTING)

    def test_connecting_to_connected(self):
        validate_transition(SessionState.CONNECTING, SessionState.CONNECTED)

    def test_connecting_to_error(self):
        validate_transition(SessionState.CONNECTING, SessionState.ERROR)

    def test_connected_to_closed(self):
        validate_transition(SessionState.CONNECTED, SessionState.CLOSED)

    def test_error_back_to_idle(self):
        validate_transition(SessionState.ERROR, SessionState.IDLE)

    def test_closed_back_to_idle(self):
        validate_transition(SessionState.CLOSED, SessionState.IDLE)

    def test_invalid_idle_to_connected(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.IDLE, SessionState.CONNECTED)

    def test_invalid_connected_to_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.CONNECTED, SessionState.CONNECTING)

    def test_invalid_error_to_connected(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(SessionState.ERROR, SessionState.CONNECTED)


class TestConnectionTransitions:
    def test_full_lifecycle(self):
        validate_connection_transition(ConnectionState.DISCONNECTED, ConnectionState.CONNECTING)
        validate_connection_transition(ConnectionState.CONNECTING, ConnectionState.STREAMING)
        validate_connection_transition(ConnectionState.STREAMING, ConnectionState.COMMITTING)
        validate_connection_transition(ConnectionState.COMMITTING, ConnectionState.STREAMING)
        validate_connection_transition(ConnectionState.STREAMING, ConnectionState.CLOSED)

    def test_closed_is_terminal(self):
        for target in ConnectionState:
            with pytest.raises(InvalidTransitionError):
                validate_connection_transition(ConnectionState.CLOSED, target)

    def test_cannot_commit_while_connecting(self):
        with pytest.raises(InvalidTransitionError):
            validate_connection_transition(ConnectionState.CONNECTING, ConnectionState.COMMITTING)
