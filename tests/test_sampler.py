import numpy as np
import pytest

from ibrdp.components.errors import InvariantViolation
from ibrdp.components.predictor import ReuseDistancePredictor
from ibrdp.components.sampler import ReuseDistanceSampler


PERIOD = 4


@pytest.fixture
def sampler(recording_predictor, tiny_quantizer):
    return ReuseDistanceSampler(PERIOD, tiny_quantizer.max_reuse_distance,
                                recording_predictor, tiny_quantizer)


def test_size_covers_the_prediction_range(sampler):
    assert sampler.size == 8
    assert sorted(sampler.fifo_positions.tolist()) == list(range(8))


def test_first_access_is_sampled(sampler):
    sampler.update(0xA, 0x1)
    assert sampler.samples_taken == 1
    assert sampler.sampling_counter == PERIOD - 1


def test_only_every_period_access_is_sampled(sampler):
    for address in range(1, 10):
        sampler.update(address, 0x1)
    # Accesses 0, 4 and 8 were sampled
    assert sampler.samples_taken == 3


def test_match_reports_distance_to_the_sampling_pc(sampler, recording_predictor):
    sampler.update(0xA, 0x111)
    for address in range(100, 109):
        sampler.update(address, 0x222)
    # Ten accesses after the sample; two newer samples were taken since
    sampler.update(0xA, 0x333)

    assert recording_predictor.updates == [(0x111, 2)]


def test_observation_tracks_distance_rounded_to_period(
        recording_predictor, tiny_quantizer):
    for k in (1, 5, 13, 21):
        recording_predictor.updates.clear()
        sampler = ReuseDistanceSampler(PERIOD, tiny_quantizer.max_reuse_distance,
                                       recording_predictor, tiny_quantizer)
        sampler.update(0xA, 0x111)
        for address in range(100, 100 + k - 1):
            sampler.update(address, 0x222)
        sampler.update(0xA, 0x333)

        assert recording_predictor.updates == [(0x111, (k - 1) // PERIOD)]


def test_matched_sample_is_invalidated(sampler, recording_predictor):
    sampler.update(0xA, 0x111)
    sampler.update(0xA, 0x111)
    sampler.update(0xA, 0x111)

    # Second access matches; third finds nothing (no new sample yet)
    assert recording_predictor.updates == [(0x111, 0)]
    assert not sampler.valid.any()


def test_unmatched_sample_is_censored_once(sampler, recording_predictor, tiny_quantizer):
    sampler.update(0xA, 0x111)
    for address in range(1000, 1000 + sampler.size * PERIOD):
        sampler.update(address, 0x222)

    assert recording_predictor.updates == [(0x111, tiny_quantizer.max_value_prediction)]
    assert sampler.censored == 1


def test_fifo_positions_stay_a_permutation(sampler):
    rng = np.random.default_rng(7)
    for _ in range(500):
        sampler.update(int(rng.integers(12)), int(rng.integers(4)))
        assert sorted(sampler.fifo_positions.tolist()) == list(range(sampler.size))


def test_trains_a_real_predictor(tiny_quantizer):
    predictor = ReuseDistancePredictor(num_sets=4, assoc=4)
    sampler = ReuseDistanceSampler(PERIOD, tiny_quantizer.max_reuse_distance,
                                   predictor, tiny_quantizer)
    # One instruction cycling over 10 lines: reuse distance 10
    for i in range(400):
        sampler.update(i % 10, 0x7)

    assert predictor.get_entry(0x7) is not None
    assert predictor.lookup(0x7) > 0


def test_corrupted_fifo_aborts_sampling(sampler):
    sampler.fifo_positions[:] = 0
    with pytest.raises(InvariantViolation):
        sampler.update(0xA, 0x1)


def test_rejects_period_not_dividing_window(recording_predictor, tiny_quantizer):
    with pytest.raises(ValueError):
        ReuseDistanceSampler(5, tiny_quantizer.max_reuse_distance,
                             recording_predictor, tiny_quantizer)
