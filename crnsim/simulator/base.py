from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from concurrent.futures import Executor, Future
from datetime import datetime
import copy
import itertools
import numpy as np
from crnsim import __version__ as CRNSIM_VERSION
from crnsim.core import ModelError, Species
from crnsim.logging import get_logger

try:
    import pandas as pd
except ImportError:
    pd = None


class SimulatorException(Exception):
    pass


class SimulationError(SimulatorException):
    """A state update would make a species amount negative."""
    pass


class Simulator(object, metaclass=ABCMeta):
    """
    Abstract base class for the crnsim simulators

    Holds the network, the time points and the initial condition and
    parameter defaults, and resolves the values actually used by a run.

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        Network to simulate.
    tspan : vector-like, optional
        Output time points (checkpoints). The first and last values are the
        start and the horizon of every simulation. May instead be given to
        :func:`run`.
    initials : vector-like or dict, optional
        Initial species amounts. A vector is ordered as ``network.species``
        and a 2D array holds one row per simulation. A dict maps species
        (or their names) to a number or to a sequence with one value per
        simulation. Species not mentioned keep their declared ``initial``.
    param_values : vector-like or dict, optional
        Parameter values, in the same forms as ``initials`` and ordered as
        ``network.parameters``. Parameters not mentioned keep their declared
        value.
    verbose : bool or int, optional (default: False)
        Logger verbosity. True means DEBUG, an integer is used as the
        logging level directly and False keeps the crnsim default.

    Notes
    -----
    ``tspan``, ``initials`` and ``param_values`` given to :func:`run` only
    apply to that call.
    """

    _supports = {'multi_initials': False,
                 'multi_param_values': False}

    @abstractmethod
    def __init__(self, network, tspan=None, initials=None,
                 param_values=None, verbose=False, **kwargs):
        self._logger = get_logger(self.__module__, network=network,
                                  log_level=verbose)
        self._logger.debug('Simulator created')
        self._network = network
        self.verbose = verbose
        self._tspan = tspan
        # Defaults, as given to the constructor
        self._initials = None
        self.initials = initials
        self._params = None
        self.param_values = param_values
        # Overrides for the current run only
        self._run_tspan = None
        self._run_initials = None
        self._run_params = None
        # Kept on the results for reference
        self._init_kwargs = dict(kwargs)
        self._run_kwargs = None

    @property
    def network(self):
        return self._network

    @property
    def tspan(self):
        if self._run_tspan is not None:
            return self._run_tspan
        return self._tspan

    @tspan.setter
    def tspan(self, new_tspan):
        self._tspan = new_tspan

    @staticmethod
    def _num_sims_calc(values):
        """ Number of simulations implied by an array or dict of values """
        if values is None:
            return None
        if isinstance(values, np.ndarray):
            return len(values)
        if not values:
            return 1
        return len(next(iter(values.values())))

    @staticmethod
    def _process_incoming_dict(new_values, description):
        """ Turn every dict value into a 1D float array of common length """
        processed = {}
        n_sims = None
        for key, val in new_values.items():
            val = np.atleast_1d(np.array(val, dtype=float))
            if val.ndim != 1:
                raise ValueError('%s for %s must be a number or a 1D '
                                 'sequence' % (description, key))
            if n_sims is None:
                n_sims = len(val)
            elif len(val) != n_sims:
                raise ValueError('all arrays in %s dictionary must be equal '
                                 'length' % description)
            processed[key] = val
        return processed, n_sims or 1

    @staticmethod
    def _apply_dict(values, overrides, index_of):
        """ Write dict overrides into columns of ``values`` """
        n_sims = Simulator._num_sims_calc(overrides)
        if len(values) == 1 and n_sims > 1:
            values = np.repeat(values, n_sims, axis=0)
        for key, val in overrides.items():
            if len(val) not in (1, len(values)):
                raise ValueError('%s implies %d simulations, but %d are '
                                 'being run' % (key, len(val), len(values)))
            values[:, index_of(key)] = val
        return values

    @property
    def initials(self):
        """ Initial amounts for each simulation, as a 2D array """
        run, base = self._run_initials, self._initials
        if run is not None and not isinstance(run, Mapping):
            return run

        if base is not None and not isinstance(base, Mapping):
            y0 = base.copy()
        else:
            y0 = np.array([[sp.initial for sp in self._network.species]],
                          dtype=float)
            if base is not None:
                y0 = self._apply_dict(y0, base, self._network.species_index)
        if run is not None:
            y0 = self._apply_dict(y0, run, self._network.species_index)
        return y0

    @initials.setter
    def initials(self, new_initials):
        self._initials = self._process_incoming_initials(new_initials)

    def _process_incoming_initials(self, new_initials):
        if new_initials is None:
            return None

        if isinstance(new_initials, Mapping):
            by_name = {}
            for sp, val in new_initials.items():
                name = sp.name if isinstance(sp, Species) else sp
                if name not in self._network.species:
                    raise IndexError('initials dictionary has unknown '
                                     'species name (%s)' % name)
                by_name[name] = val
            new_initials, n_sims = self._process_incoming_dict(by_name,
                                                               'initials')
            values = np.concatenate(list(new_initials.values())) \
                if new_initials else np.zeros(0)
        else:
            new_initials = np.array(new_initials, dtype=float)
            if new_initials.ndim == 1:
                new_initials = new_initials.reshape(1, -1)
            if new_initials.ndim != 2 or \
                    new_initials.shape[1] != self._network.n_species:
                raise ValueError('initials must have one value per species '
                                 '(%d)' % self._network.n_species)
            n_sims = len(new_initials)
            values = new_initials

        if not np.isfinite(values).all():
            raise ValueError('Please check initials for non-finite values')
        if (values < 0).any():
            raise ValueError('Initial species amounts must be non-negative')
        if n_sims > 1 and not self._supports['multi_initials']:
            raise ValueError('%s does not support multiple initial values'
                             % self.__class__.__name__)
        return new_initials

    @property
    def param_values(self):
        """ Parameter values for each simulation, as a 2D array """
        run, base = self._run_params, self._params
        if run is not None and not isinstance(run, Mapping):
            return run

        parameters = self._network.parameters
        if base is not None and not isinstance(base, Mapping):
            params = base.copy()
        else:
            params = np.array([[np.nan if p.value is None else p.value
                                for p in parameters]])
            if base is not None:
                params = self._apply_dict(params, base, parameters.index)
        if run is not None:
            params = self._apply_dict(params, run, parameters.index)

        missing = [p.name for i, p in enumerate(parameters)
                   if np.isnan(params[:, i]).any()]
        if missing:
            raise ModelError('No value supplied for parameter(s): %s' %
                             ', '.join(missing))
        return params

    @param_values.setter
    def param_values(self, new_params):
        self._params = self._process_incoming_params(new_params)

    def _process_incoming_params(self, new_params):
        if new_params is None:
            return None

        if isinstance(new_params, Mapping):
            for key in new_params:
                if key not in self._network.parameters:
                    raise IndexError('param_values dictionary has unknown '
                                     'parameter name (%s)' % key)
            new_params, n_sims = self._process_incoming_dict(new_params,
                                                             'params')
            values = np.concatenate(list(new_params.values())) \
                if new_params else np.zeros(0)
        else:
            new_params = np.array(new_params, dtype=float)
            if new_params.ndim == 1:
                new_params = new_params.reshape(1, -1)
            if new_params.ndim != 2 or \
                    new_params.shape[1] != self._network.n_parameters:
                raise ValueError('param_values must have one value per '
                                 'parameter (%d)'
                                 % self._network.n_parameters)
            n_sims = len(new_params)
            values = new_params

        if not np.isfinite(values).all() or (values < 0).any():
            raise ModelError('Parameter values must be finite and '
                             'non-negative')
        if n_sims > 1 and not self._supports['multi_param_values']:
            raise ValueError('%s does not support multiple parameter values'
                             % self.__class__.__name__)
        return new_params

    def _reset_run_overrides(self):
        """ Forget the tspan, initials and param_values of the last run """
        self._run_tspan = None
        self._run_initials = None
        self._run_params = None

    @abstractmethod
    def run(self, tspan=None, initials=None, param_values=None,
            _run_kwargs=None):
        """
        Run the simulation(s)

        Subclasses call this first, passing their own extra arguments as
        ``_run_kwargs=locals()`` so they are recorded on the result, and
        return a :class:`SimulationResult`, whose constructor clears the
        per-run overrides.

        Afterwards ``self.tspan`` is a 1D float array, and
        ``self.initials`` and ``self.param_values`` are 2D arrays with the
        same number of rows.
        """
        self._logger.info('Simulation(s) started')
        run_kwargs = dict(_run_kwargs or {})
        for key in ('self', '__class__', 'tspan', 'initials',
                    'param_values'):
            run_kwargs.pop(key, None)
        self._run_kwargs = run_kwargs

        tspan = self._tspan if tspan is None else tspan
        if tspan is None:
            raise ValueError('tspan must be defined before simulation can '
                             'run')
        tspan = np.array(tspan, dtype=float)
        if tspan.ndim != 1 or len(tspan) < 2:
            raise ValueError('tspan must be a 1D vector of at least two '
                             'time points')
        if not np.isfinite(tspan).all() or (np.diff(tspan) < 0).any():
            raise ValueError('tspan must be finite and non-decreasing')
        run_params = self._process_incoming_params(param_values)
        run_initials = self._process_incoming_initials(initials)
        self._run_tspan = tspan
        self._run_params = run_params
        self._run_initials = run_initials

        try:
            initials = self.initials
            params = self.param_values
        except (ValueError, ModelError):
            self._reset_run_overrides()
            raise
        # A single row is shared by every simulation
        if len(params) == 1 and len(initials) > 1:
            params = np.repeat(params, len(initials), axis=0)
        elif len(initials) == 1 and len(params) > 1:
            initials = np.repeat(initials, len(params), axis=0)
        if len(params) != len(initials):
            self._reset_run_overrides()
            raise ValueError('param_values and initials must be equal '
                             'lengths (%d and %d)'
                             % (len(params), len(initials)))
        self._run_params = params
        self._run_initials = initials


class SimulationResult(object):
    """
    Trajectories from a simulator run, with the inputs that produced them

    A trajectory is a 2D array with time along the first axis and species
    along the second. Simulation ``k`` used parameter set
    ``k // simulations_per_param_set``.

    Parameters
    ----------
    simulator : Simulator or None
        The simulator which produced the trajectories. Its network, current
        initials, parameter values and arguments are recorded.
    tout : list-like
        Time points of each simulation.
    trajectories : list of numpy.ndarray or numpy.ndarray
        One 2D array per simulation, or a 3D array.
    squeeze : bool, optional (default: True)
        Return a single simulation's data without the simulation axis.
    simulations_per_param_set : int
        Runs per parameter set. 1 for deterministic simulators; ``n_runs``
        for the stochastic ones.
    network : crnsim.ReactionNetwork
    initials : numpy.ndarray
    param_values : numpy.ndarray
        Used instead of the simulator's when ``simulator`` is None.

    Attributes
    ----------
    tout : numpy.ndarray or list
        2D array (simulation, time) if all simulations have the same number
        of time points, otherwise a list of 1D arrays.
    run_kwargs, init_kwargs : dict
        Extra arguments given to the simulator.
    simulator_class : type or None
    crnsim_version : str
    timestamp : datetime.datetime

    Examples
    --------
    >>> import numpy as np
    >>> from crnsim.examples.birth_death import network
    >>> from crnsim.simulator import GillespieSimulator
    >>> sim = GillespieSimulator(network, tspan=np.linspace(0, 100, 11))
    >>> res = sim.run(n_runs=20, seed=1)
    >>> res.nsims
    20
    >>> res.mean().shape
    (11, 1)
    >>> res.all[0]['X'][0]
    0.0
    """

    def __init__(self, simulator, tout, trajectories, squeeze=True,
                 simulations_per_param_set=1,
                 network=None, initials=None, param_values=None):
        if simulator:
            simulator._logger.debug('Collecting simulation results')
            self._param_values = simulator.param_values.copy()
            self._initials = simulator.initials.copy()
            self._network = simulator.network
            self.simulator_class = simulator.__class__
            self.init_kwargs = copy.deepcopy(simulator._init_kwargs)
            self.run_kwargs = copy.deepcopy(simulator._run_kwargs)
        else:
            self._param_values = param_values
            self._initials = initials
            self._network = network
            self.simulator_class = None
            self.init_kwargs = {}
            self.run_kwargs = {}

        self.squeeze = squeeze
        self._yfull = None
        self.n_sims_per_parameter_set = simulations_per_param_set
        self.crnsim_version = CRNSIM_VERSION
        self.timestamp = datetime.now()

        if getattr(trajectories, 'ndim', None) == 3:
            self._y = list(trajectories)
        else:
            try:
                if any(tr.ndim != 2 for tr in trajectories):
                    raise AttributeError
            except (AttributeError, TypeError):
                raise ValueError('trajectories should be a 3D array or a '
                                 'list of 2D arrays')
            self._y = list(trajectories)
        self._nsims = len(self._y)

        tout = [np.asarray(t, dtype=float) for t in tout]
        if len(tout) != self._nsims:
            raise ValueError('Got %d time vectors for %d trajectories'
                             % (len(tout), self._nsims))
        for i, (t, y) in enumerate(zip(tout, self._y)):
            if len(t) != y.shape[0]:
                raise ValueError('Simulation %d has %d time points but %d '
                                 'trajectory rows' % (i, len(t), y.shape[0]))
            if y.shape[1] != self._network.n_species:
                raise ValueError('Simulation %d has %d species columns, the '
                                 'network has %d species'
                                 % (i, y.shape[1], self._network.n_species))
        if self._nsims % simulations_per_param_set:
            raise ValueError('The number of simulations must be a multiple '
                             'of simulations_per_param_set')
        if len(set(len(t) for t in tout)) <= 1:
            self.tout = np.array(tout)
        else:
            self.tout = tout

        if simulator:
            simulator._reset_run_overrides()

    def _squeeze_output(self, per_simulation):
        if self.nsims == 1 and self.squeeze:
            return per_simulation[0]
        return per_simulation

    @property
    def nsims(self):
        """ Number of simulations """
        return self._nsims

    @property
    def n_param_sets(self):
        """ Number of parameter (and initial condition) sets """
        return self.nsims // self.n_sims_per_parameter_set

    @property
    def network(self):
        return self._network

    @property
    def species(self):
        """ Trajectories, one 2D array (time, species) per simulation """
        return self._squeeze_output(self._y)

    def _records(self):
        if self._yfull is None:
            dtype = list(zip(self._network.species.keys(),
                             itertools.repeat(float)))
            self._yfull = []
            for y in self._y:
                records = np.empty(len(y), dtype)
                records.view(float).reshape(len(y), -1)[:] = y
                self._yfull.append(records)
        return self._yfull

    @property
    def all(self):
        """
        Trajectories as record arrays with one float field per species name
        """
        return self._squeeze_output(self._records())

    @property
    def dataframe(self):
        """
        All trajectories as one :class:`pandas.DataFrame`

        Indexed by time for a single (squeezed) simulation, otherwise by
        (simulation, time). Requires pandas.
        """
        if pd is None:
            raise Exception('Please "pip install pandas" for this feature')
        times = np.concatenate(list(self.tout))
        if self.nsims == 1 and self.squeeze:
            index = pd.Index(times, name='time')
        else:
            sim_ids = np.repeat(np.arange(self.nsims),
                                [len(t) for t in self.tout])
            index = pd.MultiIndex.from_arrays([sim_ids, times],
                                              names=['simulation', 'time'])
        return pd.DataFrame(np.concatenate(self._records()),
                            index=index)

    def _ensemble(self):
        """ Trajectories as a 4D array (param set, run, time, species) """
        if isinstance(self.tout, list) or \
                any(not np.array_equal(t, self.tout[0]) for t in self.tout):
            raise ValueError('Ensemble statistics require every simulation '
                             'to be sampled at identical time points')
        y = np.stack(self._y)
        return y.reshape((self.n_param_sets, self.n_sims_per_parameter_set) +
                         y.shape[1:])

    def _squeeze_param_sets(self, stat):
        if self.n_param_sets == 1 and self.squeeze:
            return stat[0]
        return stat

    def mean(self):
        """
        Ensemble mean trajectory

        The elementwise average over the simulations of each parameter set.
        Returns a 2D array (time, species) for a single parameter set (when
        squeezing), otherwise a 3D array (parameter set, time, species).
        """
        return self._squeeze_param_sets(self._ensemble().mean(axis=1))

    def std(self, ddof=0):
        """ Ensemble standard deviation trajectory; see :func:`mean` """
        return self._squeeze_param_sets(self._ensemble().std(axis=1,
                                                             ddof=ddof))

    @property
    def initials(self):
        return self._initials

    @property
    def param_values(self):
        return self._param_values


class SerialExecutor(Executor):
    """ Runs each submitted task immediately, in the calling process """
    def submit(self, fn, *args, **kwargs):
        f = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            f.set_exception(e)
        else:
            f.set_result(result)
        return f
