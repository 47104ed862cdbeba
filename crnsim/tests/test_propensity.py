import numpy as np
import pytest
from crnsim import Reaction, ReactionNetwork, Custom, ModelError
from crnsim.propensity import PropensityEvaluator
from crnsim.examples import gene_expression, autorepression


def _mixed_order_network():
    return ReactionNetwork([
        Reaction(None, 'A', 3.0, name='make_A'),
        Reaction({'A': 2}, 'B', 0.5, name='dimerize'),
        Reaction(['A', 'B'], 'C', 0.25, name='bind'),
        Reaction({'C': 3}, None, 2.0, name='trimer_decay'),
        Reaction('B', 'A', Custom('k * B / (1 + A)', ['B', 'A'], ['k']),
                 name='custom'),
    ])


def test_gene_expression_propensities():
    evaluator = PropensityEvaluator(gene_expression.network)
    assert np.allclose(evaluator([10, 5]), [10.0, 1.0, 10.0, 0.005])
    assert np.allclose(evaluator([0, 0]), [10.0, 0.0, 0.0, 0.0])


def test_param_values_override():
    evaluator = PropensityEvaluator(gene_expression.network,
                                    param_values={'kr': 2.0})
    assert evaluator([0, 0])[0] == 2.0
    with pytest.raises(ModelError):
        PropensityEvaluator(gene_expression.network,
                            param_values={'kr': -2.0})


def test_missing_parameter_value():
    net = ReactionNetwork([Reaction('A', None, 'kd')])
    with pytest.raises(ModelError):
        PropensityEvaluator(net)


def test_matches_scalar_propensity():
    net = _mixed_order_network()
    params = {'k': 1.5}
    rng = np.random.default_rng(0)
    for stochastic in (True, False):
        evaluator = PropensityEvaluator(net, params, stochastic=stochastic)
        for _ in range(50):
            state = rng.integers(0, 6, size=net.n_species)
            propensities = evaluator(state)
            expected = [net.propensity(i, state, params,
                                       stochastic=stochastic)
                        for i in range(net.n_reactions)]
            assert np.allclose(propensities, expected)
            assert np.allclose([evaluator.evaluate(i, state)
                                for i in range(net.n_reactions)], expected)


def test_non_negative_and_exact_zeros():
    net = _mixed_order_network()
    evaluator = PropensityEvaluator(net, {'k': 1.5})
    a, b, c = (net.species_index(s) for s in 'ABC')
    rng = np.random.default_rng(1)
    for _ in range(200):
        state = rng.integers(0, 5, size=net.n_species)
        propensities = evaluator(state)
        assert (propensities >= 0).all()
        if state[a] < 2:
            assert propensities[1] == 0.0
        if state[a] < 1 or state[b] < 1:
            assert propensities[2] == 0.0
        if state[c] < 3:
            assert propensities[3] == 0.0


def test_update_in_place():
    net = gene_expression.network
    evaluator = PropensityEvaluator(net)
    propensities = evaluator([10, 5])
    state = np.array([11, 5])
    result = evaluator.update(state, propensities, net.dependents(0))
    assert result is propensities
    assert np.allclose(propensities, evaluator(state))
    # Reactions not listed are left alone
    evaluator.update(np.array([11, 500]), propensities, [])
    assert np.allclose(propensities, evaluator(state))


def test_custom_rate_law():
    net = autorepression.network
    evaluator = PropensityEvaluator(net)
    mrna, p = net.species_index('mRNA'), net.species_index('P')
    state = np.zeros(2)
    state[p] = 20
    # vmax / (1 + (P / K)**n) with P == K
    assert evaluator(state)[0] == pytest.approx(5.0)
    state[p] = 0
    assert evaluator(state)[0] == pytest.approx(10.0)
    state[mrna] = 3
    assert evaluator(state)[2] == pytest.approx(6.0)


def test_custom_negative_rate():
    net = ReactionNetwork([
        Reaction(None, 'A', Custom('k - A', ['A'], ['k'])),
    ])
    evaluator = PropensityEvaluator(net, {'k': 1.0})
    assert evaluator([0])[0] == 1.0
    with pytest.raises(ModelError):
        evaluator([2])
