import pytest

from qformvdf.prover import approximate_parameters, get_block


def test_small_iterations_use_single_segment():
    l, k = approximate_parameters(1000)
    assert l == 1
    assert k >= 1


def test_tiny_iterations_fall_back_to_one():
    assert approximate_parameters(1) == (1, 1)


def test_large_iterations_use_more_segments():
    l, k = approximate_parameters(2**30)
    assert l == 10
    assert k >= 1


def test_k_grows_with_iterations():
    ks = [approximate_parameters(2**e)[1] for e in range(4, 23)]
    assert ks == sorted(ks)
    assert ks[-1] > ks[0]


@pytest.mark.parametrize("b", [1000003, 97, 2**61 - 1])
def test_blocks_are_digits_of_quotient(b):
    iterations, k = 60, 5
    blocks = [get_block(i, k, iterations, b) for i in range(iterations // k)]
    assert all(0 <= blk < 2**k for blk in blocks)
    total = sum(blk << (k * i) for i, blk in enumerate(blocks))
    assert total == 2**iterations // b


def test_block_index_out_of_range():
    with pytest.raises(ValueError):
        get_block(20, 5, 60, 97)