# mimoaudio

Building blocks for block-based, multi-input multi-output (MIMO) audio
processing with NumPy.

## Modules

- `mimoaudio.combine_channels`: sum a list of input channels into an output
  array.
  - A selector object decides about each input. Its `select(item)` returns a
    `CombineResult`: `NOTHING`, `CONSTANT`, `CHANGE`, `FADE_IN` or
    `FADE_OUT`. Any other value raises `ValueError`.
  - `CombineChannelsCopy` adds inputs unchanged.
  - `CombineChannels` applies `selector(sample)` to each sample.
  - `CombineChannelsInterpolation` calls `selector(sample, index)` for inputs
    marked `CHANGE`.
  - `CombineChannelsCrossfadeCopy` and `CombineChannelsCrossfade` crossfade
    changing inputs. They use a fade object such as `RaisedCosineFade(block_size)`,
    which has `size`, `fade_out` and `fade_in`. The old state is evaluated
    first, the selector's `update()` is called, and then the new state is
    evaluated. `CombineChannelsCrossfade` evaluates the old state as
    `selector(sample, fade_out=True)`.
  - If no input is selected, the output is filled with zeros.
- `mimoaudio.convolver`: uniformly partitioned FFT convolution.
  - The block size must be a positive multiple of 8; anything else raises
    `ValueError`.
  - `Filter(block_size, coefficients, partitions)` holds the spectra of the
    filter partitions. A zero partition is stored as `None`.
  - `Input.add_block()` takes a block of samples.
  - `Output.convolve(weight)` and `StaticOutput.convolve(weight)` return one
    block of output.
  - With `Output.set_filter()`, the first partition takes effect at once. The
    later partitions follow one step per `rotate_queues()`. `queues_empty()`
    tells whether any are still pending.
  - `Convolver` and `StaticConvolver` combine an input and an output stage.
  - Helper functions are `min_partitions()` and `transform_nested()`.
- `mimoaudio.rtlist`: `RtList` records `add`, `add_many`, `rem`, `rem_many`
  and `clear` as commands in a `CommandQueue`.
  - The processing side applies them with `process_commands()`.
  - The other side finishes them with `cleanup_commands()`.
  - While the queue is deactivated, commands run as soon as they are pushed.
  - `wait()` blocks until all earlier commands have been executed.
- `mimoaudio.pointer_policy`: `PointerPolicy` receives audio through
  `audio_callback(n, inputs, outputs)`, with one array per channel.
  - `n` must equal `block_size`.
  - Output channels must be NumPy arrays; they are written in place.
- `mimoaudio.mimoprocessor`: `MimoProcessor` processes one block at a time.
  - For each block it applies pending list changes, then runs every `Input`,
    then `process_main()`, then every `Output`.
  - The items of each list are shared out among `threads` threads (default:
    number of CPUs).
  - Subclasses override `Input.process_input()`, `Output.process_output()`
    and `process_main()`.
  - Before `activate()`, and after `deactivate()`, `add()` and `rem()` take
    effect immediately. In between, they take effect at the next block.
  - Use it as a context manager, or call `close()`, to stop the worker
    threads.
- `mimoaudio.simpleprocessor`: `SimpleProcessor` has `in_channels`
  `SimpleInput`s and `out_channels` `SimpleOutput`s. Each output receives the
  average of all inputs. The processor is active once it has been
  constructed.

## Installation

```
pip install .
```

NumPy is the only runtime dependency.

## Example: convolution

```python
import numpy as np
from mimoaudio.convolver import StaticConvolver

block_size = 8
impulse_response = np.array([1.0, 0.5, 0.25])

conv = StaticConvolver.from_coefficients(block_size, impulse_response, 0)
conv.add_block(np.ones(block_size))
out = conv.convolve(1.0)   # block_size output samples
```

A partition count of `0` means "as many partitions as the coefficients need".

## Example: mixing blocks

```python
import numpy as np
from mimoaudio.simpleprocessor import SimpleProcessor

params = {
    "in_channels": 2,
    "out_channels": 2,
    "block_size": 4,
    "sample_rate": 44100,
    "threads": 1,
}

with SimpleProcessor(params) as engine:
    inputs = [np.ones(4), np.zeros(4)]
    outputs = [np.empty(4) for _ in range(2)]
    engine.audio_callback(4, inputs, outputs)
    # each output now holds the mean of the inputs: 0.5
```

## What it does not do

- The package does not talk to a sound card or an audio server. Audio
  reaches a processor only through `audio_callback()`.
- The `connect-to` parameters that `SimpleProcessor` gives its channels
  (`in_port_prefix` and `out_port_prefix`) are stored in each item's
  `params` and nothing more. No connection is made.
- There is no command-line program.

## Running the tests

```
pip install .[test]
pytest
```