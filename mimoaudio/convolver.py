"""Uniformly partitioned fast convolution.

A convolution engine is made of an :class:`Input` stage, which turns blocks
of time-domain samples into spectra, and an output stage (:class:`Output`
or :class:`StaticOutput`), which multiplies these spectra with the
partitions of a :class:`Filter` and returns one block of the convolved
signal per call.  :class:`Convolver` and :class:`StaticConvolver` combine
both stages.

A partition is stored as its complex spectrum (a numpy array of
``block_size + 1`` values) or as ``None`` when it is known to be all zeros,
which allows skipping FFTs and multiplications.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from typing import Callable, Iterator, Optional, Union, overload

import numpy as np

Spectrum = Optional[np.ndarray]

# Marks a queue slot that carries no pending filter update.
_NO_UPDATE = object()


def min_partitions(block_size: int, filter_size: int) -> int:
    """Return the number of partitions needed for a filter of given length."""
    if block_size <= 0:
        raise ValueError("block size must be positive")
    if filter_size <= 0:
        raise ValueError("filter size must be positive")
    return (filter_size + block_size - 1) // block_size


def _as_samples(values: Iterable[float]) -> np.ndarray:
    return np.asarray(values, dtype=float).ravel()


class Transform:
    """Forward transform of time-domain blocks into partition spectra."""

    def __init__(self, block_size: int) -> None:
        if block_size <= 0 or block_size % 8 != 0:
            raise ValueError("Convolver: block size must be a multiple of 8!")
        self.block_size = block_size
        self.partition_size = 2 * block_size

    def prepare_partition(self, samples: Iterable[float]) -> Spectrum:
        """Transform up to one block of samples, zero-padded.

        Returns ``None`` if all samples are zero (or there are none).
        """
        chunk = _as_samples(samples)[: self.block_size]
        if not np.any(chunk):
            return None
        return np.fft.rfft(chunk, n=self.partition_size)

    def prepare_filter(self, coefficients: Iterable[float],
                       partitions: Optional[int] = None) -> list[Spectrum]:
        """Split coefficients into partitions and transform each of them.

        Missing coefficients are taken as zeros, surplus ones are ignored.
        """
        coeffs = _as_samples(coefficients)
        if not partitions:
            partitions = min_partitions(self.block_size, coeffs.size)
        size = self.block_size
        return [self.prepare_partition(coeffs[k * size:(k + 1) * size])
                for k in range(partitions)]


class Filter(Sequence):
    """Frequency-domain partitions of a filter.

    Without coefficients an all-zero filter with ``partitions`` partitions
    is created.  With coefficients, ``partitions`` defaults to the minimum
    number needed to hold them.
    """

    def __init__(self, block_size: int,
                 coefficients: Optional[Iterable[float]] = None,
                 partitions: Optional[int] = None) -> None:
        if coefficients is None:
            if block_size <= 0:
                raise ValueError("block size must be positive")
            if not partitions or partitions < 0:
                raise ValueError("an empty filter needs at least one partition")
            self._partitions: list[Spectrum] = [None] * partitions
        else:
            coeffs = _as_samples(coefficients)
            if coeffs.size == 0:
                raise ValueError("a filter needs at least one coefficient")
            if partitions is not None and partitions < 0:
                raise ValueError("number of partitions must not be negative")
            self._partitions = Transform(block_size).prepare_filter(
                coeffs, partitions)
        self.block_size = block_size

    @property
    def partition_size(self) -> int:
        return 2 * self.block_size

    @property
    def partitions(self) -> int:
        return len(self._partitions)

    @overload
    def __getitem__(self, index: int) -> Spectrum: ...

    @overload
    def __getitem__(self, index: slice) -> list[Spectrum]: ...

    def __getitem__(self, index):
        return self._partitions[index]

    def __setitem__(self, index: int, value: Spectrum) -> None:
        self._partitions[index] = value

    def __len__(self) -> int:
        return len(self._partitions)

    def __iter__(self) -> Iterator[Spectrum]:
        return iter(self._partitions)


class Input:
    """Input stage: turns blocks of samples into partition spectra.

    ``spectra`` holds the spectra of the most recent double-blocks, newest
    first.
    """

    def __init__(self, block_size: int, partitions: int) -> None:
        self._transform = Transform(block_size)
        if partitions <= 0:
            raise ValueError("number of partitions must be positive")
        self.spectra: deque[Spectrum] = deque([None] * partitions,
                                              maxlen=partitions)
        self._previous = np.zeros(block_size)
        self._previous_zero = True

    @property
    def block_size(self) -> int:
        return self._transform.block_size

    @property
    def partition_size(self) -> int:
        return self._transform.partition_size

    @property
    def partitions(self) -> int:
        return len(self.spectra)

    def add_block(self, block: Iterable[float]) -> None:
        """Add one block of time-domain samples."""
        samples = _as_samples(block)
        if samples.size < self.block_size:
            raise ValueError(
                f"block needs {self.block_size} samples, got {samples.size}")
        samples = samples[: self.block_size].copy()
        block_zero = not np.any(samples)

        if block_zero and self._previous_zero:
            spectrum: Spectrum = None
        else:
            spectrum = np.fft.rfft(np.concatenate((self._previous, samples)))

        self.spectra.appendleft(spectrum)
        self._previous = samples
        self._previous_zero = block_zero


def _check_block_size(filter: object, block_size: int) -> None:
    if isinstance(filter, Filter) and filter.block_size != block_size:
        raise ValueError(
            f"filter block size {filter.block_size} does not match "
            f"input block size {block_size}")


class _OutputBase:
    """Multiplies input spectra with filter partitions."""

    def __init__(self, input: Input) -> None:
        self._input = input
        self._filter: list[Spectrum] = [None] * input.partitions

    @property
    def block_size(self) -> int:
        return self._input.block_size

    @property
    def partitions(self) -> int:
        return len(self._filter)

    def _convolve(self, weight: float) -> np.ndarray:
        accumulated: Spectrum = None
        for signal, partition in zip(self._input.spectra, self._filter):
            if signal is None or partition is None:
                continue
            product = signal * partition
            accumulated = (product if accumulated is None
                           else accumulated + product)

        size = self.block_size
        if accumulated is None:
            return np.zeros(size)
        return np.fft.irfft(accumulated, n=2 * size)[size:] * weight


class Output(_OutputBase):
    """Output stage whose filter can be exchanged.

    A new filter's first partition takes effect at once; partition ``k``
    takes effect after ``k`` calls to :meth:`rotate_queues`.
    """

    def __init__(self, input: Input) -> None:
        super().__init__(input)
        self._queues: list[list[object]] = [
            [_NO_UPDATE] * size for size in range(1, input.partitions)]

    def convolve(self, weight: float = 1.0) -> np.ndarray:
        """Return one block of the convolved signal, scaled by ``weight``."""
        return self._convolve(weight)

    def set_filter(self, filter: Iterable[Spectrum]) -> None:
        """Set a new filter; missing partitions become zero, extra ones are
        ignored."""
        _check_block_size(filter, self.block_size)
        partitions = iter(filter)
        first = next(partitions, _NO_UPDATE)
        if first is not _NO_UPDATE:
            self._filter[0] = first  # type: ignore[assignment]
        for queue in self._queues:
            queue[-1] = next(partitions, None)

    def queues_empty(self) -> bool:
        """Return True if no filter partition is waiting to take effect."""
        if not self._queues:
            return True
        return all(slot is _NO_UPDATE for slot in self._queues[-1])

    def rotate_queues(self) -> None:
        """Move pending filter partitions one step towards taking effect."""
        for index, queue in enumerate(self._queues, start=1):
            head = queue.pop(0)
            if head is not _NO_UPDATE:
                self._filter[index] = head  # type: ignore[assignment]
            queue.append(_NO_UPDATE)


class StaticOutput(_OutputBase):
    """Output stage with a filter fixed at construction.

    ``filter`` is a :class:`Filter` or time-domain coefficients.
    """

    def __init__(self, input: Input,
                 filter: Union[Filter, Iterable[float]]) -> None:
        super().__init__(input)
        if not isinstance(filter, Filter):
            filter = Filter(input.block_size, filter, input.partitions)
        _check_block_size(filter, input.block_size)
        partitions = iter(filter)
        self._filter = [next(partitions, None) for _ in self._filter]

    def convolve(self, weight: float = 1.0) -> np.ndarray:
        """Return one block of the convolved signal, scaled by ``weight``."""
        return self._convolve(weight)


class Convolver:
    """Input and exchangeable-filter output combined."""

    def __init__(self, block_size: int, partitions: int) -> None:
        self.input = Input(block_size, partitions)
        self.output = Output(self.input)

    @property
    def block_size(self) -> int:
        return self.input.block_size

    @property
    def partitions(self) -> int:
        return self.input.partitions

    def add_block(self, block: Iterable[float]) -> None:
        self.input.add_block(block)

    def convolve(self, weight: float = 1.0) -> np.ndarray:
        return self.output.convolve(weight)

    def set_filter(self, filter: Iterable[Spectrum]) -> None:
        self.output.set_filter(filter)

    def queues_empty(self) -> bool:
        return self.output.queues_empty()

    def rotate_queues(self) -> None:
        self.output.rotate_queues()


class StaticConvolver:
    """Input and fixed-filter output combined."""

    def __init__(self, filter: Filter,
                 partitions: Optional[int] = None) -> None:
        self.input = Input(filter.block_size, partitions or filter.partitions)
        self.output = StaticOutput(self.input, filter)

    @classmethod
    def from_coefficients(cls, block_size: int,
                          coefficients: Iterable[float],
                          partitions: Optional[int] = None) -> StaticConvolver:
        """Create a convolver from time-domain filter coefficients."""
        coeffs = _as_samples(coefficients)
        if coeffs.size == 0:
            raise ValueError("a filter needs at least one coefficient")
        partitions = partitions or min_partitions(block_size, coeffs.size)
        return cls(Filter(block_size, coeffs, partitions), partitions)

    @property
    def block_size(self) -> int:
        return self.input.block_size

    @property
    def partitions(self) -> int:
        return self.input.partitions

    def add_block(self, block: Iterable[float]) -> None:
        self.input.add_block(block)

    def convolve(self, weight: float = 1.0) -> np.ndarray:
        return self.output.convolve(weight)


def transform_nested(in1: Sequence[Spectrum], in2: Sequence[Spectrum],
                     out: Filter,
                     f: Callable[[np.ndarray, np.ndarray], np.ndarray]) -> None:
    """Combine two filters partition by partition into ``out``.

    ``f`` is applied to whole spectra; a missing or zero partition is
    passed as zeros.  Two zero partitions give a zero partition.
    """
    first = iter(in1)
    second = iter(in2)
    for index in range(len(out)):
        a = next(first, None)
        b = next(second, None)
        if a is None and b is None:
            out[index] = None
            continue
        if a is None:
            a = np.zeros_like(b)
        elif b is None:
            b = np.zeros_like(a)
        elif a.shape != b.shape:
            raise ValueError("partitions of different size cannot be combined")
        if isinstance(out, Filter) and a.shape != (out.block_size + 1,):
            raise ValueError("partition size does not match target filter")
        out[index] = np.asarray(f(a, b), dtype=complex)