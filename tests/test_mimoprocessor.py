import threading
import time

import numpy as np
import pytest

from mimoaudio.mimoprocessor import Input, MimoProcessor, Output

BLOCK = 4


def make_params(threads=1, **extra):
    return {"sample_rate": 44100, "block_size": BLOCK, "threads": threads,
            **extra}


@pytest.fixture
def proc():
    with MimoProcessor(make_params()) as p:
        yield p


class CopyOutput(Output):
    def process_output(self):
        self.buffer[:] = sum(np.asarray(i) for i in self.parent.input_list)


class CountingOutput(Output):
    def __init__(self, parent, params=None):
        super().__init__(parent, params)
        self.count = 0

    def process_output(self):
        self.count += 1


class FailingOutput(Output):
    def process_output(self):
        raise RuntimeError("boom")


def test_passthrough(proc):
    proc.add(Input(proc))
    proc.add(CopyOutput(proc))
    proc.activate()
    out = np.zeros(BLOCK)
    proc.audio_callback(BLOCK, [np.arange(BLOCK, dtype=float)], [out])
    np.testing.assert_array_equal(out, np.arange(BLOCK, dtype=float))


def test_items_added_before_activation_appear_at_once(proc):
    inp = proc.add(Input(proc))
    assert list(proc.input_list) == [inp]


def test_add_after_activation_is_deferred(proc):
    proc.activate()
    inp = proc.add(Input(proc))
    assert len(proc.input_list) == 0
    proc.audio_callback(BLOCK, [np.ones(BLOCK)], [])
    assert list(proc.input_list) == [inp]


def test_rem_is_applied_by_deactivate(proc):
    proc.activate()
    inp = proc.add(Input(proc))
    proc.audio_callback(BLOCK, [np.ones(BLOCK)], [])
    proc.rem(inp)
    assert len(proc.input_list) == 1
    assert proc.deactivate() is True
    assert len(proc.input_list) == 0


def test_rem_unknown_item_raises(proc):
    with pytest.raises(ValueError):
        proc.rem(Input(proc))


def test_add_wrong_type_raises(proc):
    with pytest.raises(TypeError):
        proc.add(object())


def test_add_item_of_other_processor_raises(proc):
    with MimoProcessor(make_params()) as other:
        with pytest.raises(ValueError):
            proc.add(Input(other))


def test_missing_parent_raises():
    with pytest.raises(ValueError):
        Input(None)


def test_invalid_thread_count():
    with pytest.raises(ValueError):
        MimoProcessor(make_params(threads=0))


def test_missing_block_size():
    with pytest.raises(KeyError):
        MimoProcessor({"sample_rate": 44100, "threads": 1})


def test_wrong_block_size_raises(proc):
    proc.activate()
    with pytest.raises(ValueError):
        proc.audio_callback(BLOCK + 1, [], [])


def test_every_item_processed_once_per_block_with_threads():
    with MimoProcessor(make_params(threads=3)) as p:
        outputs = [p.add(CountingOutput(p)) for _ in range(7)]
        p.activate()
        buffers = [np.zeros(BLOCK) for _ in outputs]
        p.audio_callback(BLOCK, [], buffers)
        p.audio_callback(BLOCK, [], buffers)
        assert p.threads == 3
        assert [o.count for o in outputs] == [2] * 7


def test_processing_order():
    log = []

    class LoggingProcessor(MimoProcessor):
        def process_main(self):
            log.append("main")

    class LoggingInput(Input):
        def process_input(self):
            log.append("in")

    class LoggingOutput(Output):
        def process_output(self):
            log.append("out")

    with LoggingProcessor(make_params()) as p:
        p.add(LoggingInput(p))
        p.add(LoggingOutput(p))
        plain = p.add(Output(p))
        p.activate()
        p.audio_callback(BLOCK, [np.zeros(BLOCK)],
                         [np.zeros(BLOCK), np.zeros(BLOCK)])
        assert plain.id == 1
    assert log == ["in", "main", "out"]


def test_worker_exception_reaches_caller():
    with MimoProcessor(make_params(threads=2)) as p:
        p.add(FailingOutput(p))
        p.add(FailingOutput(p))
        p.activate()
        with pytest.raises(RuntimeError, match="boom"):
            p.audio_callback(BLOCK, [], [np.zeros(BLOCK), np.zeros(BLOCK)])


def test_wait_for_rt_thread(proc):
    proc.activate()
    inp = proc.add(Input(proc))
    finished = threading.Event()

    def waiter():
        proc.wait_for_rt_thread()
        finished.set()

    thread = threading.Thread(target=waiter, daemon=True)
    thread.start()
    deadline = time.monotonic() + 5.0
    while not finished.is_set() and time.monotonic() < deadline:
        proc.audio_callback(BLOCK, [np.zeros(BLOCK)], [])
        time.sleep(0.001)
    thread.join(timeout=1.0)
    assert finished.is_set()
    assert list(proc.input_list) == [inp]


def test_close_drops_items():
    p = MimoProcessor(make_params(threads=2))
    p.add(Input(p))
    p.add(Output(p))
    p.activate()
    p.close()
    assert len(p.input_list) == 0
    assert len(p.output_list) == 0


def test_input_buffer_is_read_only(proc):
    class WritingInput(Input):
        def process_input(self):
            self.buffer[0] = 1.0

    proc.add(WritingInput(proc))
    with pytest.raises(ValueError):
        proc.audio_callback(BLOCK, [np.zeros(BLOCK)], [])


def test_channel_ids_count_up(proc):
    first = proc.add(Input(proc))
    second = proc.add(Input(proc))
    assert (first.id, second.id) == (0, 1)
    assert proc.in_channels == 2