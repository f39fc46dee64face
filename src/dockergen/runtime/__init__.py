"""Runtime orchestration: engine, interval tasks, event watcher and notifier."""

from dockergen.runtime.contracts import WatcherSignal, WatcherState, transition_watcher_state
from dockergen.runtime.engine import Engine, GenerationResult
from dockergen.runtime.event_watcher import EventWatcher
from dockergen.runtime.interval import IntervalTask
from dockergen.runtime.notifier import Notifier

__all__ = [
	"Engine",
	"EventWatcher",
	"GenerationResult",
	"IntervalTask",
	"Notifier",
	"WatcherSignal",
	"WatcherState",
	"transition_watcher_state",
]
