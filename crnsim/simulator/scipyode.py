from crnsim.simulator.base import Simulator, SimulationResult, \
    SerialExecutor, SimulatorException
from crnsim.propensity import PropensityEvaluator
from crnsim.logging import get_logger, NetworkLoggerAdapter
import scipy.integrate, scipy.sparse
import sympy
from functools import partial
import numpy as np
import warnings
from concurrent.futures import ProcessPoolExecutor


class ScipyOdeSimulator(Simulator):
    """
    Deterministic simulation of a reaction network with SciPy's ODE solvers

    Species amounts are continuous and mass action rates follow the power
    law ``k * prod(x_i ** c_i)``. The derivative of each species is the
    stoichiometry matrix applied to the vector of reaction rates.

    The ``lsoda`` integrator runs through :func:`scipy.integrate.odeint`;
    every other name is passed to :class:`scipy.integrate.ode`.

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        Network to simulate.
    tspan : vector-like, optional
        Output time points. The integration runs from the first to the last
        value. If the integrator gives up before the end, the rows it did
        not reach are NaN.
    initials : vector-like or dict, optional
        Initial species amounts, ordered as ``network.species``, or a dict
        keyed by species name. Species left out keep their declared
        ``initial`` amount.
    param_values : vector-like or dict, optional
        Parameter values, ordered as ``network.parameters``, or a dict keyed
        by parameter name. Parameters left out keep their declared value.
    verbose : bool or int, optional (default: False)
        Logger verbosity. True means DEBUG, an integer is used as the
        logging level directly and False keeps the crnsim default.
    **kwargs : dict
        Extra keyword arguments, including:

        * ``integrator``: Integrator name, e.g. ``vode`` (default, BDF),
          ``lsoda``, ``zvode``, ``dopri5`` or ``dop853``.
        * ``integrator_options``: Options passed to the integrator, on top
          of :attr:`default_integrator_options`.
        * ``compiler``: How to build the right-hand side: ``sympy`` or
          ``numpy``. None (default) picks ``sympy`` when every rate law is
          symbolic and ``numpy`` otherwise.
        * ``use_analytic_jacobian``: Pass the symbolic Jacobian to the
          integrator (``sympy`` compiler only).

    Notes
    -----
    Overshoot below zero from the integrator is not clamped.

    Examples
    --------
    Simulate the gene expression network towards its steady state:

    >>> from crnsim.examples.gene_expression import network
    >>> import numpy as np
    >>> sim = ScipyOdeSimulator(network, tspan=np.linspace(0, 100, 11))
    >>> res = sim.run()
    >>> res.species.shape
    (11, 2)
    >>> bool(abs(res.species[-1, 0] - 100 * (1 - np.exp(-10))) < 1e-3)
    True
    """

    _supports = {'multi_initials': True,
                 'multi_param_values': True}

    default_integrator_options = {
        'vode': {
            'method': 'bdf',
            'with_jacobian': True,
            # Largest step count a 32-bit vode build accepts
            'nsteps': 2 ** 31 - 1,
        },
        'lsoda': {
            'mxstep': 2 ** 31 - 1,
        }
    }

    def __init__(self, network, tspan=None, initials=None, param_values=None,
                 verbose=False, **kwargs):
        super(ScipyOdeSimulator, self).__init__(network,
                                                tspan=tspan,
                                                initials=initials,
                                                param_values=param_values,
                                                verbose=verbose,
                                                **kwargs)
        use_jacobian = kwargs.pop('use_analytic_jacobian', False)
        integrator = kwargs.pop('integrator', 'vode')
        compiler = kwargs.pop('compiler', None)
        user_options = kwargs.pop('integrator_options', {})
        if kwargs:
            raise ValueError('Unknown keyword argument(s): {}'.format(
                ', '.join(kwargs.keys())
            ))

        builder_cls = _select_rhs_builder(compiler, network, self._logger)
        if use_jacobian and not builder_cls.supports_jacobian:
            raise ValueError('use_analytic_jacobian requires a network whose '
                             'rate laws can be expressed with sympy')
        self._logger.debug('Right-hand side builder: %s',
                           builder_cls.__name__)
        self.rhs_builder = builder_cls(network, use_jacobian,
                                       _logger=self._logger)

        self.opts = dict(self.default_integrator_options.get(integrator, {}))
        self.opts.update(user_options)
        self.integrator_name = integrator
        if integrator != 'lsoda':
            # Fail now rather than in a worker if the name is not known
            _make_ode_integrator(None, None, integrator, self.opts)

    def run(self, tspan=None, initials=None, param_values=None,
            num_processors=1):
        """
        Integrate the ODEs for every initial condition/parameter set

        Parameters
        ----------
        tspan
        initials
        param_values
            Overrides for this run only. See :class:`ScipyOdeSimulator`.
        num_processors : int
            Number of worker processes (default: 1, no subprocesses). Only
            helps when several initial conditions or parameter sets are
            simulated.

        Returns
        -------
        A :class:`SimulationResult` object
        """
        if int(num_processors) != num_processors or num_processors < 1:
            raise SimulatorException('num_processors must be a positive '
                                     'integer')
        super(ScipyOdeSimulator, self).run(tspan=tspan,
                                           initials=initials,
                                           param_values=param_values,
                                           _run_kwargs=locals())
        if num_processors == 1:
            self._logger.debug('Integrating in this process')
            executor = SerialExecutor()
        else:
            self._logger.debug('Integrating in %d processes', num_processors)
            executor = ProcessPoolExecutor(max_workers=num_processors)

        integrate = partial(_integrator_process,
                            tspan=self.tspan,
                            integrator_name=self.integrator_name,
                            integrator_opts=self.opts,
                            rhs_builder=self.rhs_builder)
        try:
            with executor:
                futures = [executor.submit(integrate, y0, p)
                           for y0, p in zip(self.initials,
                                            self.param_values)]
                try:
                    trajectories = [f.result() for f in futures]
                finally:
                    for f in futures:
                        f.cancel()
        except Exception:
            self._reset_run_overrides()
            raise

        for n, trajectory in enumerate(trajectories):
            if np.isnan(trajectory[-1]).any():
                self._logger.warning('Integration of simulation %d stopped '
                                     'early; remaining time points are NaN',
                                     n)

        tout = np.tile(self.tspan, (len(trajectories), 1))
        self._logger.info('All simulation(s) complete')
        return SimulationResult(self, tout, trajectories)


def _make_ode_integrator(rhs_fn, jac_fn, name, options):
    ode = scipy.integrate.ode(rhs_fn, jac=jac_fn)
    with warnings.catch_warnings():
        # scipy only warns about an unknown integrator name
        warnings.filterwarnings('error', 'No integrator name match')
        ode.set_integrator(name, **options)
    return ode


def _integrator_process(initials, param_values, tspan, integrator_name,
                        integrator_opts, rhs_builder):
    """ Integrate one initial condition/parameter set """
    rhs_fn = rhs_builder.rhs_fn
    jac_fn = rhs_builder.jacobian_fn
    y0 = np.array(initials, dtype=float)
    p = np.array(param_values, dtype=float)

    if integrator_name == 'lsoda':
        return scipy.integrate.odeint(rhs_fn, y0, tspan, args=(p, ),
                                      Dfun=jac_fn, tfirst=True,
                                      **integrator_opts)

    ode = _make_ode_integrator(rhs_fn, jac_fn, integrator_name,
                               integrator_opts)
    ode.set_initial_value(y0, tspan[0])
    ode.set_f_params(p)
    if jac_fn is not None:
        ode.set_jac_params(p)

    trajectory = np.full((len(tspan), len(y0)), np.nan)
    trajectory[0] = y0
    for i in range(1, len(tspan)):
        y = ode.integrate(tspan[i])
        if not ode.successful():
            break
        trajectory[i] = y
    return trajectory


class RhsBuilder(object):
    """
    Builds the ODE right-hand side (and optionally its Jacobian)

    Subclasses implement ``_get_rhs`` and, when ``supports_jacobian`` is
    set, ``_get_jacobian``; both return callables ``f(t, y, p)``. The
    callables are built lazily and dropped on pickling, since builders are
    shipped to worker processes and lambdified functions are not picklable.
    ``check(network)`` raises if the builder cannot handle a network.

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        Network to build the right-hand side for.
    with_jacobian : bool, optional (default: False)
        Also build the Jacobian with respect to the species.
    """

    supports_jacobian = False

    def __init__(self, network, with_jacobian=False, _logger=None):
        self.network = network
        self.with_jacobian = with_jacobian
        self.stoichiometry_matrix = network.stoichiometry_matrix
        self._logger = _logger or get_logger(__name__, network=network)
        self._rhs_fn = None
        self._jacobian_fn = None

    def __getstate__(self):
        state = dict(self.__dict__, _rhs_fn=None, _jacobian_fn=None)
        state['_logger'] = state['_logger'].extra
        return state

    def __setstate__(self, state):
        state['_logger'] = NetworkLoggerAdapter(get_logger(self.__module__),
                                                state['_logger'])
        self.__dict__.update(state)

    @property
    def rhs_fn(self):
        """ ``rhs(t, y, p)``, returning dy/dt """
        if self._rhs_fn is None:
            self._logger.debug('Building right-hand side function')
            self._rhs_fn = self._get_rhs()
        return self._rhs_fn

    @property
    def jacobian_fn(self):
        """ ``jac(t, y, p)``, or None without ``with_jacobian`` """
        if not self.with_jacobian:
            return None
        if self._jacobian_fn is None:
            self._logger.debug('Building Jacobian function')
            self._jacobian_fn = self._get_jacobian()
        return self._jacobian_fn

    def _get_rhs(self):
        raise NotImplementedError

    def _get_jacobian(self):
        raise NotImplementedError

    @classmethod
    def check(cls, network):
        return True

    @classmethod
    def check_safe(cls, network):
        """ Whether :func:`check` passes for this network """
        try:
            cls.check(network)
        except Exception:
            return False
        return True


class SympyRhsBuilder(RhsBuilder):
    """
    Right-hand side lambdified from the symbolic reaction rates

    Attributes
    ----------
    y : sympy.MatrixSymbol
        Column of species amounts.
    p : sympy.MatrixSymbol
        Column of parameter values.
    kinetics : sympy.Matrix
        Reaction rates in terms of ``y`` and ``p``.
    kinetics_jacobian_y : sympy.SparseMatrix
        Derivatives of the rates with respect to ``y`` (only with
        ``with_jacobian``).
    """

    supports_jacobian = True

    def __init__(self, network, with_jacobian=False, _logger=None):
        super(SympyRhsBuilder, self).__init__(network, with_jacobian, _logger)
        self.y = sympy.MatrixSymbol('y', network.n_species, 1)
        self.p = sympy.MatrixSymbol('p', network.n_parameters, 1)
        subs = dict(zip(network.species, self.y))
        subs.update(zip(network.parameters, self.p))
        self.kinetics = sympy.Matrix([rate.xreplace(subs)
                                      for rate in network.kinetics()])
        if with_jacobian:
            self._logger.debug('Differentiating reaction rates')
            self.kinetics_jacobian_y = sympy.SparseMatrix(
                self.kinetics).jacobian(self.y)

    def _get_rhs(self):
        rates = sympy.lambdify([self.y, self.p], self.kinetics)
        stoich = self.stoichiometry_matrix

        def rhs(t, y, p):
            v = np.asarray(rates(y[:, None], p[:, None]), dtype=float)
            return stoich.dot(v[:, 0])

        return rhs

    def _get_jacobian(self):
        rate_jacobian = sympy.lambdify([self.y, self.p],
                                       self.kinetics_jacobian_y)
        stoich = self.stoichiometry_matrix

        def jacobian(t, y, p):
            # lambdify may return a scipy sparse matrix
            jac = stoich.dot(rate_jacobian(y[:, None], p[:, None]))
            if scipy.sparse.issparse(jac):
                jac = jac.toarray()
            return np.asarray(jac, dtype=float)

        return jacobian

    @classmethod
    def check(cls, network):
        if not network.is_symbolic:
            raise RuntimeError("Network %s has rate laws which cannot be "
                               "expressed with sympy" % network.name)


class NumpyRhsBuilder(RhsBuilder):
    """
    Right-hand side evaluated with a deterministic PropensityEvaluator

    Works for every network, including custom rate functions which cannot
    be traced symbolically.
    """

    def _get_rhs(self):
        network = self.network
        stoich = self.stoichiometry_matrix
        cache = {}

        def rhs(t, y, p):
            key = p.tobytes()
            if key not in cache:
                # One parameter vector per integration
                cache.clear()
                cache[key] = PropensityEvaluator(network, p,
                                                 stochastic=False)
            return stoich.dot(cache[key](y))

        return rhs


# Tried in this order when no compiler is named
_rhs_builders = {
    'sympy': SympyRhsBuilder,
    'numpy': NumpyRhsBuilder,
}


def _select_rhs_builder(compiler, network, logger):
    if compiler is not None:
        if compiler not in _rhs_builders:
            raise ValueError('Unknown ODE compiler name: %s (choose from %s)'
                             % (compiler, ', '.join(_rhs_builders)))
        cls = _rhs_builders[compiler]
        cls.check(network)
        return cls

    for cls in _rhs_builders.values():
        if cls.check_safe(network):
            break
    else:
        raise RuntimeError('No usable ODE compiler found')
    if cls is NumpyRhsBuilder:
        logger.info('Some rate laws cannot be expressed with sympy; the ODE '
                    'right-hand side will be evaluated numerically')
    return cls
