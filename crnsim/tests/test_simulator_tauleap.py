import numpy as np
import pytest
from crnsim import Reaction, ReactionNetwork, Parameter
from crnsim.simulator import TauLeapingSimulator, SimulationError, \
    SimulatorException
from crnsim.examples import birth_death, gene_expression


class TestTauLeapingSimulator(object):
    def setup_method(self):
        self.tspan = np.linspace(0, 20, 21)
        self.sim = TauLeapingSimulator(gene_expression.network,
                                       tspan=self.tspan, dt=0.05)

    def teardown_method(self):
        self.sim = None

    def test_run(self):
        res = self.sim.run(n_runs=2, seed=1)
        assert res.nsims == 2
        assert np.array_equal(res.tout, [self.tspan, self.tspan])
        for y in res.species:
            assert y.shape == (len(self.tspan), 2)
            assert (y >= 0).all()
            assert np.array_equal(y, np.round(y))
            assert np.array_equal(y[0], [0, 0])

    def test_dt_required(self):
        sim = TauLeapingSimulator(gene_expression.network, tspan=self.tspan)
        with pytest.raises(SimulatorException):
            sim.run()
        # Overrides from the failed run are not kept
        assert np.array_equal(sim.tspan, self.tspan)
        res = sim.run(dt=0.1, seed=1)
        assert res.run_kwargs['dt'] == 0.1

    @pytest.mark.parametrize('dt', [0, -0.1, np.inf, 'spam'])
    def test_invalid_dt(self, dt):
        with pytest.raises(SimulatorException):
            TauLeapingSimulator(gene_expression.network, dt=dt)
        with pytest.raises(SimulatorException):
            self.sim.run(dt=dt)

    def test_invalid_init_kwarg(self):
        with pytest.raises(ValueError):
            TauLeapingSimulator(gene_expression.network, dt=0.1,
                                spam='eggs')

    def test_reproducible_seed(self):
        res1 = self.sim.run(n_runs=3, seed=11)
        res2 = self.sim.run(n_runs=3, seed=11)
        assert np.array_equal(np.stack(res1.species),
                              np.stack(res2.species))
        parallel = self.sim.run(n_runs=3, seed=11, num_processors=2)
        assert np.array_equal(np.stack(res1.species),
                              np.stack(parallel.species))

    def test_non_integer_initials(self):
        with pytest.raises(ValueError):
            self.sim.run(initials={'mRNA': 2.5})


def test_negative_count_suggests_smaller_dt():
    net = ReactionNetwork([Reaction('A', None, Parameter('kd', 10.0))])
    sim = TauLeapingSimulator(net, tspan=[0, 10], initials=[10], dt=1.0)
    with pytest.raises(SimulationError) as excinfo:
        sim.run(seed=1)
    assert 'smaller dt' in str(excinfo.value)
    # Settings given to the failed run are not kept
    with pytest.raises(SimulationError):
        sim.run(tspan=[0, 5], initials=[20], seed=1)
    assert np.array_equal(sim.tspan, [0, 10])
    assert np.array_equal(sim.initials, [[10]])


def test_absorbing_state():
    net = ReactionNetwork([Reaction('A', None, Parameter('kd', 1.0))])
    sim = TauLeapingSimulator(net, tspan=np.linspace(0, 100, 11), dt=0.1)
    res = sim.run(seed=1)
    assert (res.species == 0).all()
    assert np.array_equal(res.tout[0], np.linspace(0, 100, 11))


def test_last_step_is_truncated():
    # With a truncated final step, the expected count at t=1.05 is
    # exactly 100 * 1.05
    net = ReactionNetwork([Reaction(None, 'A', Parameter('kb', 100.0))])
    sim = TauLeapingSimulator(net, tspan=[0, 1.05], dt=0.1)
    res = sim.run(n_runs=200, seed=2)
    final = np.array([y[-1, 0] for y in res.species])
    assert abs(final.mean() - 105) < 4


def test_checkpoint_inside_step_reports_step_start():
    net = ReactionNetwork([Reaction(None, 'A', Parameter('kb', 100.0))])
    sim = TauLeapingSimulator(net, tspan=[0, 0.05, 0.1], dt=0.1)
    res = sim.run(n_runs=5, seed=3)
    for y in res.species:
        assert y[0, 0] == 0
        assert y[1, 0] == 0
        assert y[2, 0] > 0


def test_birth_death_stays_bounded():
    sim = TauLeapingSimulator(birth_death.network,
                              tspan=np.linspace(0, 100, 11), dt=0.1)
    res = sim.run(n_runs=10, seed=4)
    mean = res.mean()
    assert mean.shape == (11, 1)
    # Stationary mean is kb / kd = 100
    assert 80 < mean[-1, 0] < 120
