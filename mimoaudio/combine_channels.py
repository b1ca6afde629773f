"""Combine several input channels into one output: copy, transform,
interpolate and crossfade."""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Any, Callable, Iterable

import numpy as np


class CombineResult(IntEnum):
    """What a selector decides to do with one input item."""

    NOTHING = 0
    CONSTANT = 1
    CHANGE = 2
    FADE_IN = 3
    FADE_OUT = 4


def raised_cosine(period: float) -> Callable[[float], float]:
    """Return a raised cosine with the given period (1 at 0, 0 at period/2)."""
    period = float(period)

    def _rc(x: float) -> float:
        return 0.5 * math.cos(2.0 * math.pi * float(x) / period) + 0.5

    return _rc


class RaisedCosineFade:
    """Crossfade curves of one block, built from a raised cosine."""

    def __init__(self, block_size: int) -> None:
        rc = raised_cosine(2 * block_size)
        # One extra value because the curve is also read in reverse order.
        data = np.array([rc(i) for i in range(block_size + 1)], dtype=float)
        self._size = block_size
        self.fade_out = data[:block_size].copy()
        self.fade_in = data[::-1][:block_size].copy()

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size


def _samples(item: Iterable[float]) -> np.ndarray:
    return np.asarray(list(item) if not hasattr(item, "__len__") else item,
                      dtype=float)


def _apply(samples: np.ndarray, f: Callable[..., float], *args: Any,
           **kwargs: Any) -> np.ndarray:
    return np.fromiter((f(x, *args, **kwargs) for x in samples),
                       dtype=float, count=len(samples))


def _store(target: np.ndarray, values: np.ndarray, accumulate: bool) -> None:
    n = len(values)
    if accumulate:
        target[:n] += values
    else:
        target[:n] = values


class CombineChannelsBase:
    """Walk over the inputs and let a selector decide how each is combined.

    ``inputs`` is iterated anew on every call to :meth:`process`; ``out`` is
    a writable numpy array that receives the result.  The selector must
    have a ``select(item)`` method returning a :class:`CombineResult`.
    """

    def __init__(self, inputs: Iterable[Any], out: np.ndarray) -> None:
        self._inputs = inputs
        self._out = out
        self._selection = CombineResult.NOTHING
        self._accumulate = False

    def process(self, selector: Any) -> None:
        """Combine all selected inputs into the output."""
        self._accumulate = False
        self._before_loop()

        for item in self._inputs:
            raw = selector.select(item)
            try:
                selection = CombineResult(raw)
            except ValueError:
                raise ValueError(
                    f"selector must return 0, 1, 2, 3 or 4, not {raw!r}"
                ) from None
            self._selection = selection
            if selection is CombineResult.NOTHING:
                continue
            if selection is CombineResult.CONSTANT:
                self._case_one(item, selector)
            else:
                self._case_two(item, selector)

        self._after_loop()

        if not self._accumulate:
            self._out[...] = 0

    def _before_loop(self) -> None:
        pass

    def _after_loop(self) -> None:
        pass

    def _case_one(self, item: Any, selector: Any) -> None:
        raise TypeError(f"{type(self).__name__}: case 1 is not supported")

    def _case_two(self, item: Any, selector: Any) -> None:
        raise TypeError(f"{type(self).__name__}: case 2 is not supported")

    def _write_out(self, values: np.ndarray) -> None:
        _store(self._out, values, self._accumulate)
        self._accumulate = True

    def _case_one_copy(self, item: Any) -> None:
        self._write_out(_samples(item))

    def _case_one_transform(self, item: Any, f: Callable[[float], float]) -> None:
        self._write_out(_apply(_samples(item), f))


class CombineChannelsCopy(CombineChannelsBase):
    """Sum the selected inputs unchanged."""

    def _case_one(self, item: Any, selector: Any) -> None:
        self._case_one_copy(item)


class CombineChannels(CombineChannelsBase):
    """Apply the selector to every sample and sum the results."""

    def _case_one(self, item: Any, selector: Any) -> None:
        self._case_one_transform(item, selector)


class CombineChannelsInterpolation(CombineChannelsBase):
    """Transform and sum; changing inputs are interpolated over the block.

    For ``CHANGE`` the selector is called as ``selector(sample, index)``.
    """

    def _case_one(self, item: Any, selector: Any) -> None:
        self._case_one_transform(item, selector)

    def _case_two(self, item: Any, selector: Any) -> None:
        if self._selection is not CombineResult.CHANGE:
            raise ValueError(
                "CombineChannelsInterpolation only supports CHANGE, "
                f"not {self._selection.name}"
            )
        samples = _samples(item)
        values = np.fromiter(
            (selector(x, float(i)) for i, x in enumerate(samples)),
            dtype=float, count=len(samples))
        self._write_out(values)


class CombineChannelsCrossfadeBase(CombineChannelsBase):
    """Common part of the crossfading combiners.

    ``fade`` provides ``size``, ``fade_out`` and ``fade_in`` curves.
    """

    def __init__(self, inputs: Iterable[Any], out: np.ndarray,
                 fade: Any) -> None:
        super().__init__(inputs, out)
        self._fade = fade
        self._fade_out_buffer = np.zeros(fade.size, dtype=float)
        self._fade_in_buffer = np.zeros(fade.size, dtype=float)
        self._accumulate_fade_out = False
        self._accumulate_fade_in = False

    def _before_loop(self) -> None:
        self._accumulate_fade_out = False
        self._accumulate_fade_in = False

    def _after_loop(self) -> None:
        if self._accumulate_fade_out:
            self._write_out(self._fade_out_buffer
                            * np.asarray(self._fade.fade_out, dtype=float))
        if self._accumulate_fade_in:
            self._write_out(self._fade_in_buffer
                            * np.asarray(self._fade.fade_in, dtype=float))

    def _crossfade(self, selector: Any,
                   old_values: Callable[[], np.ndarray],
                   new_values: Callable[[], np.ndarray]) -> None:
        if self._selection is not CombineResult.FADE_IN:
            _store(self._fade_out_buffer, old_values(),
                   self._accumulate_fade_out)
            self._accumulate_fade_out = True
        if self._selection is not CombineResult.FADE_OUT:
            selector.update()
            _store(self._fade_in_buffer, new_values(),
                   self._accumulate_fade_in)
            self._accumulate_fade_in = True


class CombineChannelsCrossfadeCopy(CombineChannelsCrossfadeBase):
    """Sum inputs unchanged, crossfading those that change.

    The selector's ``update()`` is called before each fade-in.
    """

    def _case_one(self, item: Any, selector: Any) -> None:
        self._case_one_copy(item)

    def _case_two(self, item: Any, selector: Any) -> None:
        samples = _samples(item)
        self._crossfade(selector, lambda: samples, lambda: samples)


class CombineChannelsCrossfade(CombineChannelsCrossfadeBase):
    """Transform and sum inputs, crossfading those that change.

    The old state is evaluated as ``selector(sample, fade_out=True)``, then
    ``update()`` is called and the new state is ``selector(sample)``.
    """

    def _case_one(self, item: Any, selector: Any) -> None:
        self._case_one_transform(item, selector)

    def _case_two(self, item: Any, selector: Any) -> None:
        samples = _samples(item)
        self._crossfade(
            selector,
            lambda: _apply(samples, selector, fade_out=True),
            lambda: _apply(samples, selector),
        )