import pytest

from dockergen.runtime.contracts import WatcherSignal, WatcherState, transition_watcher_state


@pytest.mark.parametrize(
    "current, signal, expected",
    [
        (WatcherState.STOPPED, WatcherSignal.START, WatcherState.DISCONNECTED),
        (WatcherState.DISCONNECTED, WatcherSignal.CONNECT_SUCCESS, WatcherState.CONNECTED),
        (WatcherState.DISCONNECTED, WatcherSignal.CONNECT_FAILURE, WatcherState.DISCONNECTED),
        (WatcherState.CONNECTED, WatcherSignal.PING_SUCCESS, WatcherState.CONNECTED),
        (WatcherState.CONNECTED, WatcherSignal.PING_FAILURE, WatcherState.DISCONNECTED),
        (WatcherState.CONNECTED, WatcherSignal.SUBSCRIBE_SUCCESS, WatcherState.SUBSCRIBED),
        (WatcherState.CONNECTED, WatcherSignal.SUBSCRIBE_FAILURE, WatcherState.CONNECTED),
        (WatcherState.SUBSCRIBED, WatcherSignal.PING_SUCCESS, WatcherState.SUBSCRIBED),
        (WatcherState.SUBSCRIBED, WatcherSignal.EVENT, WatcherState.SUBSCRIBED),
        (WatcherState.SUBSCRIBED, WatcherSignal.TIMEOUT, WatcherState.SUBSCRIBED),
        (WatcherState.SUBSCRIBED, WatcherSignal.PING_FAILURE, WatcherState.DISCONNECTED),
        (WatcherState.SUBSCRIBED, WatcherSignal.STREAM_CLOSED, WatcherState.DISCONNECTED),
    ],
)
def test_valid_transitions(current, signal, expected):
    assert transition_watcher_state(current, signal) == expected


@pytest.mark.parametrize("current", list(WatcherState))
def test_stop_is_accepted_from_every_state(current):
    assert transition_watcher_state(current, WatcherSignal.STOP) == WatcherState.STOPPED


@pytest.mark.parametrize(
    "current, signal",
    [
        (WatcherState.STOPPED, WatcherSignal.PING_SUCCESS),
        (WatcherState.DISCONNECTED, WatcherSignal.EVENT),
        (WatcherState.DISCONNECTED, WatcherSignal.PING_SUCCESS),
        (WatcherState.CONNECTED, WatcherSignal.EVENT),
        (WatcherState.SUBSCRIBED, WatcherSignal.SUBSCRIBE_SUCCESS),
    ],
)
def test_invalid_transitions_raise(current, signal):
    with pytest.raises(ValueError):
        transition_watcher_state(current, signal)
