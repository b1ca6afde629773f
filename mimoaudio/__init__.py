"""Block-based multi-input multi-output audio processing: channel combining,
partitioned convolution, deferred lists and a threaded block processor."""

__version__ = "0.1.0"

__all__ = [
    "combine_channels",
    "convolver",
    "rtlist",
    "pointer_policy",
    "mimoprocessor",
    "simpleprocessor",
]