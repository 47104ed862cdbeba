from functools import partial

import numpy as np

from crnsim.propensity import PropensityEvaluator
from crnsim.simulator.base import SimulationError
from crnsim.simulator.ssa_base import SSABase, _record_until


class GillespieSimulator(SSABase):
    """
    Exact stochastic simulation with Gillespie's direct method

    Species amounts are non-negative integer molecule counts and mass action
    propensities use the combinatorial form ``k * prod(C(x_i, c_i))``. At
    each step the waiting time to the next event is drawn from an
    exponential distribution with rate equal to the total propensity, and
    the reaction is picked with probability proportional to its propensity.
    Only the propensities of reactions depending on the species changed by
    the fired reaction are recomputed (see
    :attr:`crnsim.ReactionNetwork.dependency_graph`).

    A run stops at the end of ``tspan``, or earlier when the total
    propensity drops to zero (the state is then held constant).

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        Network to simulate.
    tspan : vector-like, optional
        Checkpoint times. The first and last values define the time range.
    initials : vector-like or dict, optional
        Initial species counts (non-negative integers). See
        :class:`crnsim.simulator.base.Simulator`.
    param_values : vector-like or dict, optional
        Parameter values. See :class:`crnsim.simulator.base.Simulator`.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.

    Examples
    --------
    >>> from crnsim.examples.birth_death import network
    >>> import numpy as np
    >>> sim = GillespieSimulator(network, tspan=np.linspace(0, 10, 6))

    Here we supply a "seed" to the random number generator for reproducible
    results, but for most purposes it is recommended to leave this blank.

    >>> res = sim.run(n_runs=3, seed=42)
    >>> res.nsims
    3
    >>> res2 = sim.run(n_runs=3, seed=42)
    >>> all(np.array_equal(a, b) for a, b in zip(res.species, res2.species))
    True
    """

    def __init__(self, network, tspan=None, initials=None,
                 param_values=None, verbose=False, **kwargs):
        super(GillespieSimulator, self).__init__(network,
                                                 tspan=tspan,
                                                 initials=initials,
                                                 param_values=param_values,
                                                 verbose=verbose,
                                                 **kwargs)
        if kwargs:
            raise ValueError('Unknown keyword argument(s): {}'.format(
                ', '.join(kwargs.keys())
            ))

    def run(self, tspan=None, initials=None, param_values=None, n_runs=1,
            seed=None, save_positions=False, num_processors=1):
        """
        Run an ensemble of simulations and return the result (trajectories)

        Parameters
        ----------
        tspan
        initials
        param_values
            See parameter definitions in :class:`GillespieSimulator`.
        n_runs : int
            The number of simulation runs per parameter set. The total
            number of simulations is therefore n_runs * max(len(initials),
            len(param_values))
        seed : int or None
            Seed for the random number generator. Each run draws from its
            own stream spawned from this seed. Set to any integer value for
            reproducible results.
        save_positions : bool
            If True, record the state after every event instead of at the
            checkpoints. Each trajectory then starts at ``tspan[0]``, has one
            row per event and ends at ``tspan[-1]``, so trajectories differ
            in length and ``tout`` is a list.
        num_processors : int
            Number of processes to use (default: 1).

        Returns
        -------
        A :class:`SimulationResult` object
        """
        super(GillespieSimulator, self).run(tspan=tspan,
                                            initials=initials,
                                            param_values=param_values,
                                            n_runs=n_runs,
                                            seed=seed,
                                            num_processors=num_processors,
                                            _run_kwargs=locals())
        simulate = partial(_direct_method,
                           network=self.network,
                           tspan=self.tspan,
                           save_positions=save_positions)
        return self._run_ensemble(simulate)


def _direct_method(initials, param_values, seed_sequence, network, tspan,
                   save_positions=False):
    """ A single run of the direct method, for parallel execution """
    rng = np.random.default_rng(seed_sequence)
    evaluator = PropensityEvaluator(network, param_values, stochastic=True)
    net_change = network.net_change_matrix
    dependents = [network.dependents(i) for i in range(network.n_reactions)]

    state = np.array(initials, dtype=np.int64)
    t = tspan[0]
    t_end = tspan[-1]
    propensities = evaluator(state)
    n_events = 0

    if save_positions:
        tout = [t]
        positions = [state.copy()]
    else:
        trajectory = np.empty((len(tspan), network.n_species))
        next_checkpoint = 0

    while network.n_reactions:
        cumulative = np.cumsum(propensities)
        a_total = cumulative[-1]
        if a_total <= 0:
            # Absorbing state
            break
        tau = -np.log(1.0 - rng.random()) / a_total
        if t + tau > t_end:
            break
        # Smallest index whose cumulative propensity exceeds the target
        r = int(np.searchsorted(cumulative, rng.random() * a_total,
                                side='right'))
        if r == network.n_reactions:
            # Target rounded up to a_total
            r = int(np.flatnonzero(propensities)[-1])
        t += tau

        if not save_positions:
            next_checkpoint = _record_until(trajectory, tspan,
                                            next_checkpoint, t, state)
        state += net_change[r]
        if (state < 0).any():
            raise SimulationError(
                'Reaction %s at t=%g would make species %s negative' % (
                    network.reactions[r].name, t,
                    ', '.join(network.species[int(s)].name
                              for s in np.flatnonzero(state < 0))))
        n_events += 1
        if save_positions:
            tout.append(t)
            positions.append(state.copy())
        evaluator.update(state, propensities, dependents[r])

    if save_positions:
        if tout[-1] < t_end:
            tout.append(t_end)
            positions.append(state.copy())
        return np.array(tout), np.array(positions, dtype=float), n_events

    trajectory[next_checkpoint:] = state
    return np.array(tspan), trajectory, n_events
