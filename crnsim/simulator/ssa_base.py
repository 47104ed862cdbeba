from concurrent.futures import ProcessPoolExecutor

import numpy as np

from crnsim.logging import EXTENDED_DEBUG
from crnsim.simulator.base import Simulator, SimulationResult, \
    SimulatorException, SerialExecutor


class SSABase(Simulator):
    """
    Base class for the discrete-count stochastic simulators

    Handles what the exact and approximate stochastic methods have in
    common: integer initial states, ensembles of ``n_runs`` independent runs
    per parameter set, per-run random streams spawned from a single seed,
    and serial or process-parallel execution.

    Run ``k`` of an ensemble uses parameter set ``k // n_runs``. Given the
    same seed, a run produces the same trajectory whatever the number of
    processes.
    """
    _supports = {'multi_initials': True, 'multi_param_values': True}

    def __init__(self, network, tspan=None, initials=None,
                 param_values=None, verbose=False, **kwargs):
        super(SSABase, self).__init__(network,
                                      tspan=tspan,
                                      initials=initials,
                                      param_values=param_values,
                                      verbose=verbose,
                                      **kwargs)
        self._n_species = network.n_species
        self._n_reactions = network.n_reactions
        self._n_runs = None
        self._seed = None
        self._num_processors = None

    def run(self, tspan=None, initials=None, param_values=None, n_runs=1,
            seed=None, num_processors=1, _run_kwargs=None):
        if int(n_runs) != n_runs or n_runs < 1:
            raise SimulatorException('n_runs must be a positive integer')
        if int(num_processors) != num_processors or num_processors < 1:
            raise SimulatorException('num_processors must be a positive '
                                     'integer')
        super(SSABase, self).run(tspan=tspan,
                                 initials=initials,
                                 param_values=param_values,
                                 _run_kwargs=_run_kwargs)
        initials = self.initials
        if (np.mod(initials, 1) != 0).any():
            self._reset_run_overrides()
            raise ValueError('Stochastic simulation requires integer initial '
                             'species counts')
        self._n_runs = int(n_runs)
        self._seed = seed
        self._num_processors = int(num_processors)

        self._logger.info('Running %s with %d parameter sets, %d repeats '
                          '(%d simulations total)', self.__class__.__name__,
                          len(initials), self._n_runs,
                          len(initials) * self._n_runs)

    def _run_ensemble(self, simulate):
        """
        Execute every run of the ensemble and collect the results

        Parameters
        ----------
        simulate : callable
            ``simulate(initials, param_values, seed_sequence)`` returning
            ``(tout, trajectory, n_events)`` for one run. Must be picklable
            for parallel execution.

        Returns
        -------
        A :class:`SimulationResult` object
        """
        initials = self.initials.astype(np.int64)
        param_values = self.param_values
        n_sims = len(initials) * self._n_runs
        seeds = np.random.SeedSequence(self._seed).spawn(n_sims)

        if self._num_processors == 1:
            self._logger.debug('Single processor (serial) mode')
        else:
            self._logger.debug('Multi-processor (parallel) mode using {} '
                               'processes'.format(self._num_processors))

        try:
            with SerialExecutor() if self._num_processors == 1 else \
                    ProcessPoolExecutor(max_workers=self._num_processors) \
                    as executor:
                results = [executor.submit(simulate,
                                           initials[k // self._n_runs],
                                           param_values[k // self._n_runs],
                                           seeds[k])
                           for k in range(n_sims)]
                try:
                    outputs = [r.result() for r in results]
                finally:
                    for r in results:
                        r.cancel()
        except Exception:
            # A failed run does not keep its overrides
            self._reset_run_overrides()
            raise

        tout = []
        trajectories = []
        for k, (t, y, n_events) in enumerate(outputs):
            self._logger.log(EXTENDED_DEBUG, 'Simulation %d: %d events', k,
                             n_events)
            tout.append(t)
            trajectories.append(y)

        self._logger.info('All simulation(s) complete')
        return SimulationResult(self, tout, trajectories,
                                simulations_per_param_set=self._n_runs)


def _record_until(trajectory, tspan, next_checkpoint, t, state, tol=0.0):
    """
    Fill the checkpoints strictly before time ``t`` with ``state``

    Trajectories are piecewise constant and right-continuous, so a checkpoint
    reports the state holding at that time. Returns the index of the first
    unfilled checkpoint.
    """
    while next_checkpoint < len(tspan) and tspan[next_checkpoint] < t - tol:
        trajectory[next_checkpoint] = state
        next_checkpoint += 1
    return next_checkpoint
