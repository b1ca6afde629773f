import numpy as np
import pytest

from mimoaudio.pointer_policy import PointerInput, PointerOutput, PointerPolicy


class Passthrough(PointerPolicy):
    def __init__(self, params):
        super().__init__(params)
        self.ins = []
        self.outs = []
        self.calls = 0

    def process(self):
        self.calls += 1
        for inp, out in zip(self.ins, self.outs):
            inp.fetch_buffer()
            out.fetch_buffer()
            out.buffer[:] = inp.buffer


PARAMS = {"sample_rate": 44100, "block_size": 4}


def test_params_are_read():
    policy = Passthrough(PARAMS)
    channel = PointerInput(policy)
    assert policy.sample_rate == 44100
    assert policy.block_size == 4
    assert channel.id == 0


def test_string_params_are_converted():
    policy = Passthrough({"sample_rate": "48000", "block_size": "8"})
    channel = PointerOutput(policy)
    assert policy.block_size == 8
    assert policy.sample_rate == 48000
    assert channel.id == 0


def test_missing_param_raises():
    policy = Passthrough.__new__(Passthrough)
    with pytest.raises(KeyError):
        PointerPolicy.__init__(policy, {"sample_rate": 44100})


def test_channel_ids_count_up():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy) for _ in range(3)]
    policy.outs = [PointerOutput(policy) for _ in range(3)]
    assert [i.id for i in policy.ins] == [0, 1, 2]
    assert policy.in_channels == 3
    assert policy.out_channels == 3


def test_audio_callback_copies_inputs_to_outputs():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy) for _ in range(2)]
    policy.outs = [PointerOutput(policy) for _ in range(2)]
    inputs = [np.array([1.0, 2.0, 3.0, 4.0]), np.array([5.0, 6.0, 7.0, 8.0])]
    outputs = [np.zeros(4), np.zeros(4)]
    PointerPolicy.audio_callback(policy, 4, inputs, outputs)
    assert policy.calls == 1
    for inp, out in zip(inputs, outputs):
        assert np.array_equal(inp, out)


def test_buffers_are_limited_to_block_size():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy)]
    policy.outs = [PointerOutput(policy)]
    inputs = [np.arange(6, dtype=float)]
    outputs = [np.zeros(6)]
    policy.audio_callback(4, inputs, outputs)
    assert len(policy.ins[0].buffer) == 4
    assert np.array_equal(outputs[0][:4], inputs[0][:4])
    assert not np.any(outputs[0][4:])


def test_input_buffer_is_read_only():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy)]
    policy.outs = [PointerOutput(policy)]
    inputs = [np.ones(4)]
    policy.audio_callback(4, inputs, [np.zeros(4)])
    with pytest.raises(ValueError):
        policy.ins[0].buffer[0] = 0.0
    assert np.array_equal(inputs[0], np.ones(4))


def test_wrong_block_size_raises():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy)]
    policy.outs = [PointerOutput(policy)]
    with pytest.raises(ValueError):
        policy.audio_callback(3, [np.ones(4)], [np.zeros(4)])
    assert policy.calls == 0


def test_short_channel_raises():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy)]
    policy.outs = [PointerOutput(policy)]
    with pytest.raises(ValueError):
        policy.audio_callback(4, [np.ones(2)], [np.zeros(4)])


def test_output_must_be_array():
    policy = Passthrough(PARAMS)
    policy.ins = [PointerInput(policy)]
    policy.outs = [PointerOutput(policy)]
    with pytest.raises(TypeError):
        policy.audio_callback(4, [np.ones(4)], [[0.0] * 4])


def test_fetch_before_callback_raises():
    policy = Passthrough(PARAMS)
    channel = PointerInput(policy)
    with pytest.raises(RuntimeError):
        channel.fetch_buffer()


def test_activate_and_deactivate_succeed():
    policy = Passthrough(PARAMS)
    assert PointerPolicy.activate(policy) is True
    assert PointerPolicy.deactivate(policy) is True


def test_policy_is_abstract():
    with pytest.raises(TypeError):
        PointerPolicy(PARAMS)