"""Tests for the Fiat-Shamir transcript."""

import pytest

from starkfri.primitives.field import DEFAULT_MODULUS
from starkfri.primitives.transcript import Transcript


def fresh(label=b"test", modulus=DEFAULT_MODULUS):
    return Transcript(label, modulus)


def test_identical_histories_give_identical_challenges():
    a, b = fresh(), fresh()
    for t in (a, b):
        t.absorb(b"root")
        t.absorb([1, 2, 3])
    assert [a.challenge_field_element() for _ in range(4)] == [b.challenge_field_element() for _ in range(4)]
    assert a.challenge_indices(5, 1000) == b.challenge_indices(5, 1000)
    assert a.state == b.state
    assert a.counter == b.counter


def test_label_separates_transcripts():
    a, b = fresh(b"one"), fresh(b"two")
    assert a.challenge_field_element() != b.challenge_field_element()


def test_str_label_matches_bytes_label():
    assert fresh("proto").state == fresh(b"proto").state


AVALANCHE_MESSAGE = bytes(range(32))


def challenge_run(message, modulus=DEFAULT_MODULUS):
    """Field and index challenges drawn after absorbing message."""
    t = fresh(modulus=modulus)
    t.absorb(message)
    fields = [int(t.challenge_field_element()) for _ in range(4)]
    indices = t.challenge_indices(4, 2**32)
    return fields + indices


def flipped(message, bit):
    data = bytearray(message)
    data[bit // 8] ^= 1 << (bit % 8)
    return bytes(data)


class TestAvalanche:

    @pytest.fixture(scope="class")
    def baseline(self):
        return challenge_run(AVALANCHE_MESSAGE)

    @pytest.mark.parametrize("bit", range(8 * len(AVALANCHE_MESSAGE)))
    def test_every_later_challenge_changes(self, baseline, bit):
        run = challenge_run(flipped(AVALANCHE_MESSAGE, bit))
        for k, (before, after) in enumerate(zip(baseline, run)):
            assert before != after, f"challenge {k} unchanged by flipping bit {bit}"

    def test_flip_changes_half_the_bits(self, baseline):
        """Over all single-bit flips, the low 32 bits of the first index
        challenge differ from the baseline in about half their positions,
        and each position flips about half the time."""
        width = 32
        n_bits = 8 * len(AVALANCHE_MESSAGE)
        flips_per_position = [0] * width
        total = 0
        for bit in range(n_bits):
            diff = baseline[4] ^ challenge_run(flipped(AVALANCHE_MESSAGE, bit))[4]
            total += bin(diff).count("1")
            for j in range(width):
                flips_per_position[j] += (diff >> j) & 1
        # Binomial(32, 1/2) mean over 256 trials: std of the mean is about 0.18
        assert 15.0 <= total / n_bits <= 17.0
        # Per position Binomial(256, 1/2): 0.30..0.70 is more than 6 sigma out
        for j, count in enumerate(flips_per_position):
            assert 0.30 <= count / n_bits <= 0.70, f"output bit {j} flipped {count}/{n_bits} times"


def test_bytes_and_elements_are_domain_separated():
    a, b = fresh(), fresh()
    a.absorb(bytes(4))
    b.absorb([0])
    assert a.state != b.state


def test_consecutive_challenges_differ():
    t = fresh()
    t.absorb(b"seed")
    challenges = [t.challenge_field_element() for _ in range(8)]
    assert len(set(int(c) for c in challenges)) == 8


class TestSmallFieldChallenges:

    def test_back_to_back_never_repeat(self):
        for seed in range(300):
            t = fresh(modulus=97)
            t.absorb(seed.to_bytes(2, "little"))
            values = [int(t.challenge_field_element()) for _ in range(6)]
            for a, b in zip(values, values[1:]):
                assert a != b, f"seed {seed}: repeated challenge {a}"

    def test_exclusion_keeps_one_operation_per_challenge(self):
        t = fresh(modulus=97)
        t.absorb(b"seed")
        for _ in range(100):
            t.challenge_field_element()
        assert t.counter == 101

    def test_absorb_clears_exclusion(self):
        """After an absorb the next challenge may equal the one before it."""
        repeats = 0
        for seed in range(2000):
            t = fresh(modulus=3)
            t.absorb(seed.to_bytes(2, "little"))
            first = int(t.challenge_field_element())
            t.absorb(b"")
            repeats += first == int(t.challenge_field_element())
        # Binomial(2000, 1/3): mean 667, std 21
        assert 550 <= repeats <= 790

    def test_three_element_field(self):
        t = fresh(modulus=3)
        t.absorb(b"seed")
        values = [int(t.challenge_field_element()) for _ in range(50)]
        assert set(values) == {0, 1, 2}
        assert all(a != b for a, b in zip(values, values[1:]))

    def test_all_values_still_reachable(self):
        t = fresh(modulus=97)
        t.absorb(b"seed")
        assert len({int(t.challenge_field_element()) for _ in range(2000)}) == 97


def test_counter_advances_once_per_operation():
    t = fresh()
    assert t.counter == 0
    t.absorb(b"x")
    t.absorb([1, 2])
    t.challenge_field_element()
    t.challenge_indices(3, 10)
    assert t.counter == 6


def test_field_element_in_range():
    t = fresh(modulus=97)
    for _ in range(50):
        assert 0 <= int(t.challenge_field_element()) < 97


@pytest.mark.parametrize("bound", [1, 2, 3, 7, 32, 1000, 2**40 + 3])
def test_index_in_range(bound):
    t = fresh()
    for i in range(20):
        assert 0 <= t.challenge_index(bound) < bound


def test_index_hits_every_value_of_small_bound():
    t = fresh()
    assert set(t.challenge_indices(200, 5)) == {0, 1, 2, 3, 4}


def test_index_bound_must_be_positive():
    with pytest.raises(ValueError):
        fresh().challenge_index(0)


def test_absorbs_galois_elements(large_field):
    a, b = fresh(), fresh()
    a.absorb(large_field([4, 5]))
    b.absorb([4, 5])
    assert a.state == b.state
