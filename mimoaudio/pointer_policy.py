"""Audio interface that takes its data from arrays handed in per block."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

import numpy as np


class PointerPolicy(ABC):
    """Interface whose audio data is supplied by :meth:`audio_callback`.

    ``params`` must contain ``sample_rate`` and ``block_size``.  Subclasses
    implement :meth:`process`, which is called once per block.
    """

    def __init__(self, params: Optional[Mapping[str, Any]] = None) -> None:
        params = {} if params is None else params
        self._sample_rate = int(params["sample_rate"])
        self._block_size = int(params["block_size"])
        self._next_input = 0
        self._next_output = 0
        self._inputs: Optional[Sequence[Any]] = None
        self._outputs: Optional[Sequence[Any]] = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def in_channels(self) -> int:
        return self._next_input

    @property
    def out_channels(self) -> int:
        return self._next_output

    def activate(self) -> bool:
        return True

    def deactivate(self) -> bool:
        return True

    def audio_callback(self, n: int, inputs: Sequence[Any],
                       outputs: Sequence[np.ndarray]) -> None:
        """Process one block; ``inputs``/``outputs`` hold one array per channel.

        Output arrays are written in place.
        """
        if n != self._block_size:
            raise ValueError(
                f"block size is {self._block_size}, got {n} samples")
        self._inputs = inputs
        self._outputs = outputs
        self.process()

    @abstractmethod
    def process(self) -> None:
        """Process the current block."""

    def _new_input_id(self) -> int:
        ident = self._next_input
        self._next_input += 1
        return ident

    def _new_output_id(self) -> int:
        ident = self._next_output
        self._next_output += 1
        return ident

    def _channel_block(self, channels: Optional[Sequence[Any]], ident: int,
                       writable: bool) -> np.ndarray:
        if channels is None:
            raise RuntimeError("no audio data; call audio_callback() first")
        channel = channels[ident]
        if writable and not isinstance(channel, np.ndarray):
            raise TypeError("output channels must be numpy arrays")
        data = np.asarray(channel)
        if data.shape[0] < self._block_size:
            raise ValueError(
                f"channel {ident} holds {data.shape[0]} samples, "
                f"needs {self._block_size}")
        view = data[: self._block_size]
        if not writable:
            view = view.view()
            view.flags.writeable = False
        return view


class PointerInput:
    """One input channel; :attr:`buffer` is a read-only view of the block."""

    def __init__(self, parent: PointerPolicy) -> None:
        self._parent = parent
        self.id = parent._new_input_id()
        self.buffer: np.ndarray = np.zeros(0)

    def fetch_buffer(self) -> None:
        """Point :attr:`buffer` at this channel's data of the current block."""
        self.buffer = self._parent._channel_block(
            self._parent._inputs, self.id, writable=False)


class PointerOutput:
    """One output channel; :attr:`buffer` is a writable view of the block."""

    def __init__(self, parent: PointerPolicy) -> None:
        self._parent = parent
        self.id = parent._new_output_id()
        self.buffer: np.ndarray = np.zeros(0)

    def fetch_buffer(self) -> None:
        """Point :attr:`buffer` at this channel's data of the current block."""
        self.buffer = self._parent._channel_block(
            self._parent._outputs, self.id, writable=True)