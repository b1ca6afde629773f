"""A list that is changed by one thread and read by a realtime thread.

Changes to an :class:`RtList` are not applied at once.  They are wrapped
into :class:`Command` objects and pushed into a :class:`CommandQueue`.  The
realtime thread applies them with :meth:`CommandQueue.process_commands`,
and the non-realtime thread finishes them with
:meth:`CommandQueue.cleanup_commands`.  While the queue is deactivated,
commands are executed and cleaned up as soon as they are pushed.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Iterable, Iterator


class Command(ABC):
    """A change to be executed in the realtime thread."""

    @abstractmethod
    def execute(self) -> None:
        """Apply the change; called in the realtime thread."""

    def cleanup(self) -> None:
        """Finish the change; called in the non-realtime thread."""


class _WaitCommand(Command):
    def __init__(self, done: threading.Event) -> None:
        self._done = done

    def execute(self) -> None:
        self._done.set()


class CommandQueue:
    """Bounded queue of commands passed between two threads."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("command queue size must be at least 1")
        self._size = size
        self._pending: deque[Command] = deque()
        self._executed: deque[Command] = deque()
        self._condition = threading.Condition()
        self._active = True

    @property
    def size(self) -> int:
        return self._size

    @property
    def active(self) -> bool:
        return self._active

    def push(self, command: Command) -> None:
        """Queue a command, or run it at once if the queue is inactive.

        Blocks while the queue is full.
        """
        if not self._active:
            command.execute()
            command.cleanup()
            return
        self.cleanup_commands()
        with self._condition:
            while len(self._pending) >= self._size:
                self._condition.wait()
            self._pending.append(command)

    def process_commands(self) -> None:
        """Execute all queued commands (realtime thread)."""
        while True:
            with self._condition:
                if not self._pending:
                    return
                command = self._pending.popleft()
                self._condition.notify_all()
            try:
                command.execute()
            finally:
                with self._condition:
                    self._executed.append(command)

    def cleanup_commands(self) -> None:
        """Clean up all executed commands (non-realtime thread)."""
        while True:
            with self._condition:
                if not self._executed:
                    return
                command = self._executed.popleft()
            command.cleanup()

    def commands_available(self) -> bool:
        """Return True if commands are waiting to be executed."""
        with self._condition:
            return bool(self._pending)

    def deactivate(self) -> bool:
        """Switch to immediate execution.

        Returns False (and stays active) if commands are still waiting.
        """
        if not self._active:
            return True
        self.cleanup_commands()
        with self._condition:
            if self._pending or self._executed:
                return False
            self._active = False
        return True

    def reactivate(self) -> None:
        """Switch back to deferred execution."""
        self._active = True

    def wait(self) -> None:
        """Block until the realtime thread has executed all earlier commands."""
        if not self._active:
            return
        done = threading.Event()
        self.push(_WaitCommand(done))
        done.wait()


def _index_of(items: list[Any], item: Any) -> int:
    for index, candidate in enumerate(items):
        if candidate is item:
            return index
    raise ValueError("RtList: item not found")


class _AddCommand(Command):
    def __init__(self, target: list[Any], items: list[Any]) -> None:
        self._target = target
        self._items = items

    def execute(self) -> None:
        self._target.extend(self._items)
        self._items = []


class _RemCommand(Command):
    def __init__(self, target: list[Any], items: list[Any]) -> None:
        self._target = target
        self._items = items
        self._removed: list[Any] = []

    def execute(self) -> None:
        for item in self._items:
            index = _index_of(self._target, item)
            self._removed.append(self._target.pop(index))

    def cleanup(self) -> None:
        self._removed.clear()


class _ClearCommand(Command):
    def __init__(self, target: list[Any]) -> None:
        self._target = target
        self._removed: list[Any] = []

    def execute(self) -> None:
        self._removed = self._target[:]
        self._target.clear()

    def cleanup(self) -> None:
        self._removed.clear()


class RtList:
    """List whose changes go through a :class:`CommandQueue`.

    Items are compared by identity when removed.
    """

    def __init__(self, fifo: CommandQueue) -> None:
        self._fifo = fifo
        self._items: list[Any] = []

    @property
    def fifo(self) -> CommandQueue:
        return self._fifo

    def add(self, item: Any) -> Any:
        """Schedule adding one item; returns the item."""
        if item is None:
            raise ValueError("RtList: cannot add None")
        self._fifo.push(_AddCommand(self._items, [item]))
        return item

    def add_many(self, items: Iterable[Any]) -> None:
        """Schedule adding several items at once."""
        self._fifo.push(_AddCommand(self._items, list(items)))

    def rem(self, item: Any) -> None:
        """Schedule removing one item.

        Executing the removal raises ValueError if the item is not there.
        """
        self._fifo.push(_RemCommand(self._items, [item]))

    def rem_many(self, items: Iterable[Any]) -> None:
        """Schedule removing several items at once."""
        self._fifo.push(_RemCommand(self._items, list(items)))

    def clear(self) -> None:
        """Schedule removing all items."""
        self._fifo.push(_ClearCommand(self._items))

    def splice(self, position: int, other: RtList) -> None:
        """Move all items of ``other`` into this list before ``position``."""
        if other._fifo is not self._fifo:
            raise ValueError("RtList: cannot splice lists of different queues")
        if other is self:
            return
        self._items[position:position] = other._items
        other._items.clear()

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]