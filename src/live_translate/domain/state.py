from enum import Enum, auto


class SessionState(Enum):
    IDLE = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    ERROR = auto()
    CLOSED = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.CONNECTING},
    SessionState.CONNECTING: {SessionState.CONNECTED, SessionState.ERROR, SessionState.CLOSED},
    SessionState.CONNECTED: {SessionState.ERROR, SessionState.CLOSED},
    SessionState.ERROR: {SessionState.IDLE},
    SessionState.CLOSED: {SessionState.IDLE},
}


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    STREAMING = auto()
    COMMITTING = auto()
    CLOSED = auto()


CONNECTION_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.DISCONNECTED: {ConnectionState.CONNECTING, ConnectionState.CLOSED},
    ConnectionState.CONNECTING: {ConnectionState.STREAMING, ConnectionState.CLOSED},
    ConnectionState.STREAMING: {ConnectionState.COMMITTING, ConnectionState.CLOSED},
    ConnectionState.COMMITTING: {ConnectionState.STREAMING, ConnectionState.CLOSED},
    ConnectionState.CLOSED: set(),
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")


def validate_connection_transition(current: ConnectionState, target: ConnectionState) -> None:
    if target not in CONNECTION_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
