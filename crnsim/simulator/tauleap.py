from functools import partial

import numpy as np

from crnsim.propensity import PropensityEvaluator
from crnsim.simulator.base import SimulationError, SimulatorException
from crnsim.simulator.ssa_base import SSABase, _record_until


class TauLeapingSimulator(SSABase):
    """
    Approximate stochastic simulation with fixed-step tau-leaping

    Time advances in steps of ``dt``. Within a step the propensities are
    held at their value at the start of the step, and each reaction fires a
    Poisson distributed number of times with mean ``propensity * dt``. The
    last step is shortened so that the run ends exactly at the end of
    ``tspan``; checkpoints falling inside a step report the state at the
    start of that step.

    As ``dt`` goes to zero the trajectories approach those of
    :class:`crnsim.simulator.GillespieSimulator` in distribution. A step
    that would make a species count negative raises
    :class:`crnsim.simulator.SimulationError`; retry with a smaller ``dt``.

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        Network to simulate.
    tspan : vector-like, optional
        Checkpoint times. The first and last values define the time range.
    initials : vector-like or dict, optional
        Initial species counts (non-negative integers).
    param_values : vector-like or dict, optional
        Parameter values.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.
    **kwargs : dict
        Extra keyword arguments, including:

        * ``dt``: Default leap size, used when :func:`run` is not given one.

    Examples
    --------
    >>> from crnsim.examples.birth_death import network
    >>> import numpy as np
    >>> sim = TauLeapingSimulator(network, tspan=np.linspace(0, 10, 6),
    ...                           dt=0.1)
    >>> res = sim.run(n_runs=2, seed=7)
    >>> res.tout.shape
    (2, 6)
    """

    def __init__(self, network, tspan=None, initials=None,
                 param_values=None, verbose=False, **kwargs):
        super(TauLeapingSimulator, self).__init__(network,
                                                  tspan=tspan,
                                                  initials=initials,
                                                  param_values=param_values,
                                                  verbose=verbose,
                                                  **kwargs)
        dt = kwargs.pop('dt', None)
        if kwargs:
            raise ValueError('Unknown keyword argument(s): {}'.format(
                ', '.join(kwargs.keys())
            ))
        self.dt = None if dt is None else self._check_dt(dt)

    @staticmethod
    def _check_dt(dt):
        try:
            dt = float(dt)
        except (TypeError, ValueError):
            raise SimulatorException('dt must be a number, got %r' % (dt, ))
        if not np.isfinite(dt) or dt <= 0:
            raise SimulatorException('dt must be positive and finite, got %g'
                                     % dt)
        return dt

    def run(self, tspan=None, initials=None, param_values=None, dt=None,
            n_runs=1, seed=None, num_processors=1):
        """
        Run an ensemble of simulations and return the result (trajectories)

        Parameters
        ----------
        tspan
        initials
        param_values
            See parameter definitions in :class:`TauLeapingSimulator`.
        dt : float or None
            Leap size for this run. Defaults to the ``dt`` given to the
            constructor; one of the two is required.
        n_runs : int
            The number of simulation runs per parameter set.
        seed : int or None
            Seed for the random number generator. Set to any integer value
            for reproducible results.
        num_processors : int
            Number of processes to use (default: 1).

        Returns
        -------
        A :class:`SimulationResult` object
        """
        super(TauLeapingSimulator, self).run(tspan=tspan,
                                             initials=initials,
                                             param_values=param_values,
                                             n_runs=n_runs,
                                             seed=seed,
                                             num_processors=num_processors,
                                             _run_kwargs=locals())
        if dt is None:
            dt = self.dt
        try:
            if dt is None:
                raise SimulatorException('Please specify the leap size dt')
            dt = self._check_dt(dt)
        except SimulatorException:
            self._reset_run_overrides()
            raise
        self._logger.debug('Leap size dt=%g', dt)

        simulate = partial(_tau_leap,
                           network=self.network,
                           tspan=self.tspan,
                           dt=dt)
        return self._run_ensemble(simulate)


def _tau_leap(initials, param_values, seed_sequence, network, tspan, dt):
    """ A single tau-leaping run, for parallel execution """
    rng = np.random.default_rng(seed_sequence)
    evaluator = PropensityEvaluator(network, param_values, stochastic=True)
    net_change = network.net_change_matrix

    state = np.array(initials, dtype=np.int64)
    t0 = tspan[0]
    t_end = tspan[-1]
    # Grid times are t0 + k * dt
    eps = dt * 1e-9
    trajectory = np.empty((len(tspan), network.n_species))
    next_checkpoint = 0
    t = t0
    step = 0
    n_events = 0

    while t < t_end - eps:
        t_next = t0 + (step + 1) * dt
        if t_next > t_end - eps:
            t_next = t_end
        next_checkpoint = _record_until(trajectory, tspan, next_checkpoint,
                                        t_next, state, tol=eps)
        propensities = evaluator(state)
        if not propensities.any():
            # Absorbing state
            break
        firings = rng.poisson(propensities * (t_next - t))
        state = state + firings.dot(net_change)
        if (state < 0).any():
            raise SimulationError(
                'Tau-leaping step %d (t=%g) would make species %s negative; '
                'try a smaller dt' % (
                    step, t,
                    ', '.join(network.species[int(s)].name
                              for s in np.flatnonzero(state < 0))))
        n_events += int(firings.sum())
        t = t_next
        step += 1

    trajectory[next_checkpoint:] = state
    return np.array(tspan), trajectory, n_events
