import numpy as np
import pytest

from lobsim.statistics.distribution import DiscreteDistribution

@pytest.fixture
def distribution():
    return DiscreteDistribution({3: 2.0, 1: 1.0, 2: 1.0, 5: 4.0})

def test_keys_are_sorted(distribution):
    assert distribution.keys.tolist() == [1.0, 2.0, 3.0, 5.0]
    assert distribution.weights.tolist() == [1.0, 1.0, 2.0, 4.0]
    assert distribution.total_weight == 8.0
    assert len(distribution) == 4

def test_views_are_read_only(distribution):
    with pytest.raises(ValueError):
        distribution.weights[0] = 10.0

def test_probability_and_cdf(distribution):
    assert distribution.probability(5) == 0.5
    assert distribution.probability(4) == 0.0
    assert distribution.cdf(0) == 0.0
    assert distribution.cdf(2) == 2.0
    assert distribution.cdf(4) == 4.0
    assert distribution.cdf(100) == 8.0

def test_quantile_boundaries(distribution):
    assert distribution.quantile(0.0) == 1.0
    assert distribution.quantile(1.0) == 5.0
    assert distribution.quantile(0.25) == 2.0
    assert distribution.quantile(0.26) == 3.0
    assert distribution.quantile(0.5) == 3.0
    assert distribution.quantile(0.51) == 5.0

def test_quantile_is_monotone(distribution):
    values = [distribution.quantile(q) for q in np.linspace(0, 1, 101)]
    assert values == sorted(values)

@pytest.mark.parametrize("q", [-0.1, 1.5])
def test_quantile_outside_unit_interval(distribution, q):
    with pytest.raises(ValueError):
        distribution.quantile(q)

def test_quantile_of_empty_distribution():
    with pytest.raises(ValueError):
        DiscreteDistribution({}).quantile(0.5)

def test_moments():
    d = DiscreteDistribution({1: 1.0, 3: 1.0})
    assert d.mean == 2.0
    assert d.moment(2) == 5.0
    assert d.variance == 1.0

def test_scale_returns_new_distribution(distribution):
    scaled = distribution.scale(10, 0.5)
    assert scaled.keys.tolist() == [10.0, 20.0, 30.0, 50.0]
    assert scaled.weights.tolist() == [0.5, 0.5, 1.0, 2.0]
    assert distribution.keys.tolist() == [1.0, 2.0, 3.0, 5.0]

def test_divide_keeps_common_keys(distribution):
    other = DiscreteDistribution({1: 2.0, 3: 4.0, 5: 0.0, 7: 1.0})
    ratio = distribution.divide(other)
    assert ratio.items() == [(1.0, 0.5), (3.0, 0.5)]

def test_weight_between(distribution):
    assert distribution.weight_between(2, 3) == 3.0
    assert distribution.weight_between(4, 4) == 0.0

def test_from_samples_aggregates():
    d = DiscreteDistribution.from_samples([2, 1, 2, 2], [1.0, 5.0, 2.0, 3.0])
    assert d.items() == [(1.0, 5.0), (2.0, 6.0)]

    counts = DiscreteDistribution.from_samples(np.array([4, 4, 9]))
    assert counts.items() == [(4.0, 2.0), (9.0, 1.0)]
    assert not DiscreteDistribution.from_samples([])
