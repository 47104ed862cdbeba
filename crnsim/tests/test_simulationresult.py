import numpy as np
import pytest
from crnsim import Reaction, ReactionNetwork, Parameter
from crnsim.simulator import SimulationResult, ScipyOdeSimulator, \
    GillespieSimulator
from crnsim.examples import gene_expression


def _two_species_network():
    return ReactionNetwork([
        Reaction(None, 'A', Parameter('ka', 1.0)),
        Reaction('A', 'B', Parameter('kab', 1.0)),
    ])


def test_direct_construction_ragged():
    net = _two_species_network()
    tout = [np.array([0.0, 1.0, 2.0]), np.array([0.0, 2.0])]
    y = [np.array([[0, 0], [1, 0], [1, 1]], dtype=float),
         np.array([[0, 0], [0, 0]], dtype=float)]
    res = SimulationResult(None, tout, y, network=net)
    assert res.nsims == 2
    assert isinstance(res.tout, list)
    assert res.simulator_class is None
    assert res.run_kwargs == {}
    all_ = res.all
    assert all_[0].dtype.names == ('A', 'B')
    assert np.array_equal(all_[0]['B'], [0, 0, 1])
    with pytest.raises(ValueError):
        res.mean()


def test_dataframe():
    pd = pytest.importorskip('pandas')
    net = _two_species_network()
    tout = [np.array([0.0, 1.0, 2.0]), np.array([0.0, 2.0])]
    y = [np.array([[0, 0], [1, 0], [1, 1]], dtype=float),
         np.array([[0, 0], [3, 0]], dtype=float)]
    df = SimulationResult(None, tout, y, network=net).dataframe
    assert isinstance(df.index, pd.MultiIndex)
    assert list(df.index.names) == ['simulation', 'time']
    assert list(df.columns) == ['A', 'B']
    assert len(df) == 5
    assert df.loc[(1, 2.0), 'A'] == 3

    single = SimulationResult(None, tout[:1], y[:1], network=net).dataframe
    assert single.index.name == 'time'
    assert np.array_equal(single['B'].values, [0, 0, 1])


def test_invalid_trajectories():
    net = _two_species_network()
    tout = [np.array([0.0, 1.0])]
    with pytest.raises(ValueError):
        SimulationResult(None, tout, [np.zeros(2)], network=net)
    with pytest.raises(ValueError):
        SimulationResult(None, tout, 'spam', network=net)
    # Wrong number of time points
    with pytest.raises(ValueError):
        SimulationResult(None, tout, [np.zeros((3, 2))], network=net)
    # Wrong number of species
    with pytest.raises(ValueError):
        SimulationResult(None, tout, [np.zeros((2, 3))], network=net)
    # tout and trajectories disagree on the number of simulations
    with pytest.raises(ValueError):
        SimulationResult(None, tout * 2, [np.zeros((2, 2))], network=net)
    with pytest.raises(ValueError):
        SimulationResult(None, tout * 3, [np.zeros((2, 2))] * 3,
                         simulations_per_param_set=2, network=net)


def test_squeeze():
    sim = ScipyOdeSimulator(gene_expression.network,
                            tspan=np.linspace(0, 10, 11))
    res = sim.run()
    assert res.species.shape == (11, 2)
    assert res.mean().shape == (11, 2)
    res.squeeze = False
    assert len(res.species) == 1
    assert res.species[0].shape == (11, 2)
    assert res.mean().shape == (1, 11, 2)


def test_metadata():
    sim = ScipyOdeSimulator(gene_expression.network,
                            tspan=np.linspace(0, 10, 11))
    res = sim.run(param_values={'kr': [1.0, 2.0]})
    assert res.simulator_class is ScipyOdeSimulator
    assert res.network is gene_expression.network
    assert res.initials.shape == (2, 2)
    assert np.array_equal(res.param_values[:, 0], [1.0, 2.0])
    assert res.crnsim_version
    assert res.timestamp is not None
    # Overrides only apply to the run they were passed to
    assert np.array_equal(sim.param_values[:, 0], [10.0])


def test_ensemble_statistics():
    sim = GillespieSimulator(gene_expression.network,
                             tspan=np.linspace(0, 10, 6))
    res = sim.run(param_values={'kr': [0.0, 5.0]}, n_runs=4, seed=1)
    mean = res.mean()
    std = res.std()
    assert mean.shape == (2, 6, 2)
    assert std.shape == (2, 6, 2)
    assert (mean[0] == 0).all()
    assert (std[0] == 0).all()
    ensemble = np.stack(res.species[4:])
    assert np.allclose(mean[1], ensemble.mean(axis=0))
    assert np.allclose(res.std(ddof=1)[1], ensemble.std(axis=0, ddof=1))
