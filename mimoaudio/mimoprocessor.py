"""Multi-threaded processor with many inputs and many outputs.

A :class:`MimoProcessor` owns a list of :class:`Input` items and a list of
:class:`Output` items.  For every audio block, handed in through
:meth:`~mimoaudio.pointer_policy.PointerPolicy.audio_callback`, it first
applies pending list changes, then processes all inputs, then calls
:meth:`MimoProcessor.process_main`, then processes all outputs.  The items
of a list are shared out among the main thread and ``threads - 1`` worker
threads.
"""

from __future__ import annotations

import itertools
import os
import threading
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

import numpy as np

from mimoaudio.pointer_policy import PointerInput, PointerOutput, PointerPolicy
from mimoaudio.rtlist import CommandQueue, RtList


class Item(ABC):
    """Something that is processed once per audio block."""

    @abstractmethod
    def process(self) -> None:
        """Process the current block."""


class _WorkerThread:
    """Thread that processes its share of the current list on request."""

    def __init__(self, number: int, parent: MimoProcessor) -> None:
        self._number = number
        self._parent = parent
        self.cont = threading.Semaphore(0)
        self.done = threading.Semaphore(0)
        self._keep_running = True
        self._thread = threading.Thread(
            target=self._run, name=f"mimo-worker-{number}", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            self.cont.acquire()
            if not self._keep_running:
                break
            try:
                self._parent._process_selected_items(self._number)
            except Exception as exc:  # handed over to the main thread
                self._parent._report_error(exc)
            self.done.release()

    def stop(self) -> None:
        self._keep_running = False
        self.cont.release()
        self._thread.join()


class MimoProcessor(PointerPolicy):
    """Processor for a changing number of inputs and outputs.

    ``params`` must contain ``sample_rate`` and ``block_size``; optional
    keys are ``threads`` (default: number of CPUs) and ``fifo_size``
    (default: 1024).  Use it as a context manager or call :meth:`close`
    to stop the worker threads.
    """

    def __init__(self, params: Optional[Mapping[str, Any]] = None) -> None:
        params = dict(params or {})
        super().__init__(params)
        self._params = params
        self._fifo = CommandQueue(int(params.get("fifo_size", 1024)))
        threads = int(params.get("threads", os.cpu_count() or 1))
        if threads < 1:
            raise ValueError("number of threads must be at least 1")
        self._num_threads = threads
        self._input_list = RtList(self._fifo)
        self._output_list = RtList(self._fifo)
        self._current_items: list[Any] = []
        self._errors: list[Exception] = []
        self._error_lock = threading.Lock()
        self._closed = False

        # Changes made before activation are applied at once.
        if not self._fifo.deactivate():
            raise RuntimeError("Bug: FIFO not empty!")

        # Number 0 is the main thread.
        self._workers = [_WorkerThread(n, self) for n in range(1, threads)]

    @property
    def params(self) -> Mapping[str, Any]:
        return MappingProxyType(self._params)

    @property
    def threads(self) -> int:
        """Number of threads, the main thread included."""
        return self._num_threads

    @property
    def fifo(self) -> CommandQueue:
        return self._fifo

    @property
    def input_list(self) -> RtList:
        return self._input_list

    @property
    def output_list(self) -> RtList:
        return self._output_list

    def activate(self) -> bool:
        """Start deferring list changes to the audio thread."""
        self._fifo.reactivate()
        return super().activate()

    def deactivate(self) -> bool:
        """Apply all pending list changes and switch to immediate changes."""
        if not super().deactivate():
            return False
        while True:
            self._fifo.process_commands()
            self._fifo.cleanup_commands()
            if not self._fifo.commands_available():
                break
        if not self._fifo.deactivate():
            raise RuntimeError("Bug: FIFO not empty!")
        return True

    def wait_for_rt_thread(self) -> None:
        """Block until the audio thread has applied all earlier changes."""
        self._fifo.wait()

    def add(self, item: Any) -> Any:
        """Add an :class:`Input` or :class:`Output` of this processor."""
        if isinstance(item, Input):
            target = self._input_list
        elif isinstance(item, Output):
            target = self._output_list
        else:
            raise TypeError(
                f"only Input and Output items can be added, not "
                f"{type(item).__name__}")
        if item.parent is not self:
            raise ValueError("item belongs to another processor")
        return target.add(item)

    def rem(self, item: Any) -> None:
        """Remove an :class:`Input` or :class:`Output`."""
        if isinstance(item, Input):
            self._input_list.rem(item)
        elif isinstance(item, Output):
            self._output_list.rem(item)
        else:
            raise TypeError(
                f"only Input and Output items can be removed, not "
                f"{type(item).__name__}")

    def process(self) -> None:
        """Process one block; called by the audio interface."""
        self._fifo.process_commands()
        self._process_list(self._input_list)
        self.process_main()
        self._process_list(self._output_list)

    def process_main(self) -> None:
        """Work done between inputs and outputs; does nothing by default."""

    def close(self) -> None:
        """Deactivate, drop all items and stop the worker threads."""
        if self._closed:
            return
        self._closed = True
        try:
            self.deactivate()
            self._input_list.clear()
            self._output_list.clear()
        finally:
            for worker in self._workers:
                worker.stop()
            self._workers = []

    def __enter__(self) -> MimoProcessor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _process_list(self, items: Iterable[Item]) -> None:
        """Process all items, shared out among all threads."""
        self._current_items = list(items)
        if not self._current_items:
            return
        for worker in self._workers:
            worker.cont.release()
        try:
            self._process_selected_items(0)
        finally:
            for worker in self._workers:
                worker.done.acquire()
            with self._error_lock:
                errors, self._errors = self._errors, []
        if errors:
            raise errors[0]

    def _process_selected_items(self, thread_number: int) -> None:
        for item in itertools.islice(self._current_items, thread_number,
                                     None, self._num_threads):
            item.process()

    def _report_error(self, exc: Exception) -> None:
        with self._error_lock:
            self._errors.append(exc)


def _check_parent(parent: Optional[MimoProcessor]) -> MimoProcessor:
    if parent is None:
        raise ValueError("Bug: In/Output: parent is missing!")
    return parent


class Input(Item, PointerInput):
    """Input channel; override :meth:`process_input` to work on it."""

    def __init__(self, parent: MimoProcessor,
                 params: Optional[Mapping[str, Any]] = None) -> None:
        PointerInput.__init__(self, _check_parent(parent))
        self.parent = parent
        self.params = dict(params or {})

    def process(self) -> None:
        self.fetch_buffer()
        self.process_input()

    def process_input(self) -> None:
        """Per-block work of this input; does nothing by default."""

    def __iter__(self) -> Iterator[float]:
        return iter(self.buffer)

    def __len__(self) -> int:
        return len(self.buffer)

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        return np.asarray(self.buffer, dtype=dtype)


class Output(Item, PointerOutput):
    """Output channel; override :meth:`process_output` to fill it."""

    def __init__(self, parent: MimoProcessor,
                 params: Optional[Mapping[str, Any]] = None) -> None:
        PointerOutput.__init__(self, _check_parent(parent))
        self.parent = parent
        self.params = dict(params or {})

    def process(self) -> None:
        self.fetch_buffer()
        self.process_output()

    def process_output(self) -> None:
        """Per-block work of this output; does nothing by default."""

    def __iter__(self) -> Iterator[float]:
        return iter(self.buffer)

    def __len__(self) -> int:
        return len(self.buffer)

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        return np.asarray(self.buffer, dtype=dtype)