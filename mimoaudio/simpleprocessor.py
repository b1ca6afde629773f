"""A processor that mixes all inputs with equal weight into every output."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import numpy as np

from mimoaudio.combine_channels import CombineChannels, CombineResult
from mimoaudio.mimoprocessor import Input, MimoProcessor, Output


class SimpleInput(Input):
    """Input that keeps its own copy of the current block."""

    def __init__(self, parent: MimoProcessor,
                 params: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(parent, params)
        self._samples = np.zeros(parent.block_size)

    def process_input(self) -> None:
        # The interface may reuse input arrays as output arrays.
        self._samples[:] = self.buffer

    def __iter__(self):
        return iter(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        return np.asarray(self._samples, dtype=dtype)


class _EqualWeight:
    def __init__(self, weight: float) -> None:
        self._weight = weight

    def select(self, item: Any) -> CombineResult:
        return CombineResult.CONSTANT

    def __call__(self, sample: float) -> float:
        return sample * self._weight


class SimpleOutput(Output):
    """Output holding the average of all inputs."""

    def __init__(self, parent: MimoProcessor,
                 params: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(parent, params)

    def process_output(self) -> None:
        inputs = self.parent.input_list
        weight = 1.0 / len(inputs) if len(inputs) else 0.0
        CombineChannels(inputs, self.buffer).process(_EqualWeight(weight))


class SimpleProcessor(MimoProcessor):
    """Processor with ``in_channels`` inputs and ``out_channels`` outputs.

    Optional ``in_port_prefix`` and ``out_port_prefix`` give each channel a
    ``connect-to`` parameter (prefix plus channel number).  The processor
    is active after construction.
    """

    def __init__(self, params: Optional[Mapping[str, Any]] = None) -> None:
        params = dict(params or {})
        in_channels = int(params["in_channels"])
        out_channels = int(params["out_channels"])
        super().__init__(params)

        in_prefix = params.get("in_port_prefix", "")
        for number in range(1, in_channels + 1):
            channel_params: dict[str, Any] = {"id": number}
            if in_prefix:
                channel_params["connect-to"] = f"{in_prefix}{number}"
            self.add(SimpleInput(self, channel_params))

        out_prefix = params.get("out_port_prefix", "")
        for number in range(1, out_channels + 1):
            channel_params = {"id": number}
            if out_prefix:
                channel_params["connect-to"] = f"{out_prefix}{number}"
            self.add(SimpleOutput(self, channel_params))

        self.activate()