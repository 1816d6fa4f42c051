"""Shared plumbing for the screen flows.

A flow owns one immutable state value and moves it forward only through its
module's pure `reduce(state, event)`. Network work is handed to a runner;
results that arrive after `close()` or `reset()` are dropped.
"""

import logging
import threading
from typing import Any, Callable, List, Optional

log = logging.getLogger(__name__)

Job = Callable[[], None]
Runner = Callable[[Job], None]
StateListener = Callable[[Any], None]


def run_inline(job: Job) -> None:
    job()


def run_in_background(job: Job) -> None:
    t = threading.Thread(target=job, daemon=True)
    t.start()


class FlowController:
    def __init__(self, initial_state, reducer: Callable[[Any, Any], Any], runner: Runner = run_inline):
        self._state = initial_state
        self._reduce = reducer
        self._runner = runner
        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._closed = False
        self._generation = 0

    @property
    def state(self):
        with self._lock:
            return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)
            current = self._state
        listener(current)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event):
        """Apply an input event. Returns the new state, or None on a closed flow."""
        return self._transition(event)

    def close(self) -> None:
        """Tear the flow down; late results become no-ops."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._listeners.clear()

    def _transition(self, event, when: Optional[Callable[[Any], bool]] = None, generation: Optional[int] = None):
        return self._apply(event, when, generation)[0]

    def _begin(self, event, when: Optional[Callable[[Any], bool]] = None):
        """Like _transition, but also returns the generation the new state belongs to."""
        return self._apply(event, when, None)

    def _preempt(self, event, when: Optional[Callable[[Any], bool]] = None):
        """Like _begin, but first orphans any call still in flight."""
        return self._apply(event, when, None, preempt=True)

    def _apply(self, event, when, generation, preempt=False):
        with self._lock:
            if self._closed:
                log.debug(f"{type(self).__name__}: dropped {type(event).__name__} on closed flow")
                return None, None
            if generation is not None and generation != self._generation:
                log.debug(f"{type(self).__name__}: dropped stale {type(event).__name__}")
                return None, None
            if when is not None and not when(self._state):
                return None, None
            if preempt:
                self._generation += 1
            self._state = self._reduce(self._state, event)
            state = self._state
            current_generation = self._generation
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)
        return state, current_generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return not self._closed and generation == self._generation

    def _restart(self, event):
        """Apply a reset-style event and orphan any call still in flight."""
        return self._preempt(event)[0]

    def _launch(self, job: Callable[[int], None], generation: int) -> None:
        self._runner(lambda: job(generation))
