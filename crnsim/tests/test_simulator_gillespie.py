import numpy as np
import pytest
from crnsim import Reaction, ReactionNetwork, Parameter, Custom
from crnsim.simulator import GillespieSimulator, SimulationError, \
    SimulatorException
from crnsim.examples import birth_death, autorepression


def _dimerization_network():
    return ReactionNetwork([
        Reaction(None, 'A', Parameter('kb', 20.0), name='birth'),
        Reaction('A', None, Parameter('kd', 0.5), name='death'),
        Reaction({'A': 2}, 'A2', Parameter('kf', 0.05), name='dimerize'),
        Reaction('A2', {'A': 2}, Parameter('kr', 1.0), name='dissociate'),
    ], name='dimerization')


class TestGillespieSimulator(object):
    def setup_method(self):
        self.network = _dimerization_network()
        self.tspan = np.linspace(0, 20, 41)
        self.sim = GillespieSimulator(self.network, tspan=self.tspan)

    def teardown_method(self):
        self.network = None
        self.sim = None

    def test_run(self):
        res = self.sim.run(n_runs=3, seed=1)
        assert res.nsims == 3
        assert len(res.species) == 3
        for tout, y in zip(res.tout, res.species):
            assert np.array_equal(tout, self.tspan)
            assert y.shape == (len(self.tspan), 2)
            assert np.array_equal(y[0], [0, 0])
            assert (y >= 0).all()
            assert np.array_equal(y, np.round(y))

    def test_invalid_init_kwarg(self):
        with pytest.raises(ValueError):
            GillespieSimulator(self.network, tspan=self.tspan, spam='eggs')

    def test_event_times_and_jumps(self):
        res = self.sim.run(n_runs=5, seed=2, save_positions=True)
        net_changes = [tuple(row) for row in self.network.net_change_matrix]
        for tout, y in zip(res.tout, res.species):
            assert tout[0] == self.tspan[0]
            assert tout[-1] == self.tspan[-1]
            events = tout[1:-1]
            assert len(events) > 0
            assert (np.diff(events) > 0).all()
            assert (events > self.tspan[0]).all()
            assert (events <= self.tspan[-1]).all()
            assert (y >= 0).all()
            # Every recorded event is the net change of one reaction
            for jump in np.diff(y[:-1], axis=0):
                assert tuple(jump.astype(int)) in net_changes
            # The horizon row repeats the last state
            assert np.array_equal(y[-1], y[-2])

    def test_checkpoints_sample_event_path(self):
        path = self.sim.run(seed=3, save_positions=True)
        sampled = self.sim.run(seed=3)
        tout, y = path.tout[0], path.species
        for c, state in zip(self.tspan, sampled.species):
            # Piecewise constant, right-continuous
            idx = np.searchsorted(tout, c, side='right') - 1
            assert np.array_equal(state, y[idx])

    def test_reproducible_seed(self):
        res1 = self.sim.run(n_runs=4, seed=123)
        res2 = self.sim.run(n_runs=4, seed=123)
        res3 = self.sim.run(n_runs=4, seed=321)
        assert np.array_equal(np.stack(res1.species), np.stack(res2.species))
        assert not np.array_equal(np.stack(res1.species),
                                  np.stack(res3.species))
        # Runs within an ensemble use independent streams
        assert not np.array_equal(res1.species[0], res1.species[1])

    def test_parallel_matches_serial(self):
        serial = self.sim.run(n_runs=4, seed=99)
        parallel = self.sim.run(n_runs=4, seed=99, num_processors=2)
        assert np.array_equal(np.stack(serial.species),
                              np.stack(parallel.species))

    def test_multiple_param_sets(self):
        res = self.sim.run(param_values={'kb': [0.0, 50.0]}, n_runs=3,
                           seed=4)
        assert res.nsims == 6
        assert res.n_param_sets == 2
        assert res.param_values.shape == (2, 4)
        # No births in the first parameter set
        for y in res.species[:3]:
            assert (y == 0).all()
        for y in res.species[3:]:
            assert y[-1].sum() > 0
        assert res.mean().shape == (2, len(self.tspan), 2)

    def test_dict_initials(self):
        res = self.sim.run(initials={'A2': 7}, param_values={'kb': 0.0},
                           seed=5)
        assert np.array_equal(res.species[0], [0, 7])
        # Mass is conserved without births
        y = res.species
        assert ((y[:, 0] + 2 * y[:, 1])[1:] <= 14).all()

    def test_non_integer_initials(self):
        with pytest.raises(ValueError):
            self.sim.run(initials=[0.5, 0])

    def test_invalid_n_runs(self):
        with pytest.raises(SimulatorException):
            self.sim.run(n_runs=0)
        with pytest.raises(SimulatorException):
            self.sim.run(num_processors=0)

    def test_run_kwargs_recorded(self):
        res = self.sim.run(n_runs=2, seed=6)
        assert res.run_kwargs == {'n_runs': 2, 'seed': 6,
                                  'save_positions': False,
                                  'num_processors': 1}
        assert res.n_sims_per_parameter_set == 2


def test_absorbing_state():
    net = ReactionNetwork([Reaction('A', None, Parameter('kd', 10.0))])
    sim = GillespieSimulator(net, tspan=np.linspace(0, 100, 11),
                             initials=[5])
    res = sim.run(seed=1, save_positions=True)
    # Exactly five events, then nothing can fire
    assert len(res.tout[0]) == 1 + 5 + 1
    assert np.array_equal(res.species[:, 0], [5, 4, 3, 2, 1, 0, 0])
    assert res.tout[0][-1] == 100

    res = sim.run(seed=1)
    assert res.species[0, 0] == 5
    assert (res.species[1:, 0] == 0).all()


def test_absorbing_from_start():
    net = ReactionNetwork([Reaction('A', None, Parameter('kd', 1.0))])
    sim = GillespieSimulator(net, tspan=[0, 10])
    res = sim.run(seed=1, save_positions=True)
    assert np.array_equal(res.tout[0], [0, 10])
    assert (res.species == 0).all()


def test_negative_count_is_error():
    # A propensity which does not vanish with its reactant
    net = ReactionNetwork([
        Reaction('A', None, Custom('k', [], ['k'])),
    ], parameters=[Parameter('k', 1.0)])
    sim = GillespieSimulator(net, tspan=[0, 100])
    with pytest.raises(SimulationError):
        sim.run(seed=1)
    # Settings given to the failed run are not kept
    with pytest.raises(SimulationError):
        sim.run(tspan=[0, 50], initials=[3], seed=1)
    assert np.array_equal(sim.tspan, [0, 100])
    assert np.array_equal(sim.initials, [[0]])


class _FixedRandom(object):
    """ Stands in for a numpy Generator, always drawing the same value """
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def test_event_at_horizon(monkeypatch):
    net = ReactionNetwork([Reaction(None, 'A', Parameter('b', 1.0))])
    # Waiting time of the first event for a uniform draw of 0.5
    t_end = -np.log(1.0 - 0.5) / 1.0
    monkeypatch.setattr(np.random, 'default_rng',
                        lambda seed: _FixedRandom(0.5))
    sim = GillespieSimulator(net, tspan=[0, t_end])
    path = sim.run(save_positions=True)
    # The event lands on the horizon and is recorded once
    assert np.array_equal(path.tout[0], [0, t_end])
    assert np.array_equal(path.species[:, 0], [0, 1])
    sampled = sim.run()
    assert np.array_equal(sampled.species[:, 0], [0, 1])


def test_custom_rate_law_network():
    sim = GillespieSimulator(autorepression.network,
                             tspan=np.linspace(0, 50, 11))
    res = sim.run(n_runs=3, seed=8)
    for y in res.species:
        assert (y >= 0).all()
        assert y[-1, 1] > 0


def test_zero_propensity_reaction_never_fires():
    net = ReactionNetwork([
        Reaction(None, 'A', Parameter('k0', 0.0), name='never'),
        Reaction(None, 'B', Parameter('k1', 5.0), name='always'),
    ])
    res = GillespieSimulator(net, tspan=[0, 50]).run(n_runs=5, seed=2)
    for y in res.species:
        assert y[-1, 0] == 0
        assert y[-1, 1] > 0


def test_default_tspan_required():
    sim = GillespieSimulator(birth_death.network)
    with pytest.raises(ValueError):
        sim.run()
