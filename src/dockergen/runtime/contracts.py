from __future__ import annotations

from enum import Enum

RETRY_DELAY_SECONDS = 10.0
PING_INTERVAL_SECONDS = 10.0


class WatcherState(str, Enum):
    """Connection states of the event watcher."""

    STOPPED = "stopped"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"


class WatcherSignal(str, Enum):
    """External signals that drive watcher state transitions."""

    START = "start"
    CONNECT_SUCCESS = "connect_success"
    CONNECT_FAILURE = "connect_failure"
    PING_SUCCESS = "ping_success"
    PING_FAILURE = "ping_failure"
    SUBSCRIBE_SUCCESS = "subscribe_success"
    SUBSCRIBE_FAILURE = "subscribe_failure"
    EVENT = "event"
    TIMEOUT = "timeout"
    STREAM_CLOSED = "stream_closed"
    STOP = "stop"


def transition_watcher_state(current: WatcherState, signal: WatcherSignal) -> WatcherState:
    """Compute the next watcher state for a given signal.

    - disconnected: a connect attempt either yields a connection or stays put.
    - connected: a failed ping drops the connection; a subscription moves on
      to subscribed, a failed one stays connected and is retried.
    - subscribed: events and probe timeouts keep the subscription; a failed
      ping or a closed stream drops back to disconnected.

    Invalid transitions raise ValueError.
    """

    if signal == WatcherSignal.STOP:
        return WatcherState.STOPPED

    if current == WatcherState.STOPPED:
        if signal == WatcherSignal.START:
            return WatcherState.DISCONNECTED
        raise ValueError(f"Invalid watcher transition: {current} -> {signal}")

    if current == WatcherState.DISCONNECTED:
        if signal == WatcherSignal.CONNECT_SUCCESS:
            return WatcherState.CONNECTED
        if signal == WatcherSignal.CONNECT_FAILURE:
            return WatcherState.DISCONNECTED
        raise ValueError(f"Invalid watcher transition: {current} -> {signal}")

    if current == WatcherState.CONNECTED:
        if signal in {WatcherSignal.PING_SUCCESS, WatcherSignal.SUBSCRIBE_FAILURE}:
            return WatcherState.CONNECTED
        if signal == WatcherSignal.PING_FAILURE:
            return WatcherState.DISCONNECTED
        if signal == WatcherSignal.SUBSCRIBE_SUCCESS:
            return WatcherState.SUBSCRIBED
        raise ValueError(f"Invalid watcher transition: {current} -> {signal}")

    if current == WatcherState.SUBSCRIBED:
        if signal in {WatcherSignal.PING_SUCCESS, WatcherSignal.EVENT, WatcherSignal.TIMEOUT}:
            return WatcherState.SUBSCRIBED
        if signal in {WatcherSignal.PING_FAILURE, WatcherSignal.STREAM_CLOSED}:
            return WatcherState.DISCONNECTED
        raise ValueError(f"Invalid watcher transition: {current} -> {signal}")

    raise ValueError(f"Unknown watcher state: {current}")
