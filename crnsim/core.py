import re
import copy
import inspect
import numbers
import collections
import numpy as np
import scipy.sparse
import sympy
import networkx as nx
from collections.abc import Iterable, Mapping, Sequence, Set

from crnsim import kinetics


class ModelError(ValueError):
    """A reaction network is malformed or cannot be evaluated."""
    pass


class InvalidComponentNameError(ModelError):
    """Inappropriate component name."""
    def __init__(self, name):
        ModelError.__init__(self, "Not a valid component name: '%s'" % name)


class ComponentDuplicateNameError(ModelError):
    """A component was added with the same name as an existing one."""
    pass


class Symbol(sympy.Dummy):
    def __new__(cls, name, real=True, **kwargs):
        return super(Symbol, cls).__new__(cls, name, real=real, **kwargs)

    def __getnewargs_ex__(self):
        return self.__getnewargs__(), {}

    def _lambdacode(self, printer, **kwargs):
        """ custom printer method that ensures that the dummyid is not
        appended when printing code """
        return self.name

    def _sympystr(self, printer, **kwargs):
        return self.name


class Component(object):

    """
    The base class for all the named things contained within a network.

    Parameters
    ----------
    name : string
        Name of the component. Must be unique within the containing network.

    Attributes
    ----------
    name : string
        Name of the component.

    """
    _VARIABLE_NAME_REGEX = re.compile(r'[_a-z][_a-z0-9]*\Z', re.IGNORECASE)

    def __init__(self, name):
        if not isinstance(name, str) or \
                not self._VARIABLE_NAME_REGEX.match(name):
            raise InvalidComponentNameError(name)
        self.name = name

    def __getstate__(self):
        return self.__dict__.copy()


class Species(Component, Symbol):

    """
    A chemical species: a named, non-negative quantity.

    Species are sympy symbols, so they can appear directly in symbolic rate
    expressions (see :class:`Custom`).

    Parameters
    ----------
    name : string
        Name of the species.
    initial : number, optional (default: 0)
        Amount used for the initial state when a simulator is not given an
        explicit value for this species.

    """

    def __new__(cls, name, initial=0):
        return super(Species, cls).__new__(cls, name, real=True,
                                           nonnegative=True)

    def __getnewargs__(self):
        return (self.name, self.initial)

    def __init__(self, name, initial=0):
        Component.__init__(self, name)
        initial = float(initial)
        if not np.isfinite(initial) or initial < 0:
            raise ModelError('Initial amount of species %s must be a finite, '
                             'non-negative number' % name)
        self.initial = initial

    def __repr__(self):
        if self.initial:
            return '%s(%s, initial=%s)' % (self.__class__.__name__,
                                           repr(self.name), repr(self.initial))
        return '%s(%s)' % (self.__class__.__name__, repr(self.name))

    def __str__(self):
        return repr(self)


class Parameter(Component, Symbol):

    """
    Network component representing a named constant floating point number.

    Parameters are used as reaction rate constants and as the arguments of
    custom rate laws.

    Parameters
    ----------
    value : number or None, optional
        The numerical value of the parameter. None (the default) means the
        value must be supplied when a simulation is run. Values are
        converted to float and must be finite and non-negative.

    Attributes
    ----------
    value (see Parameters above).

    """

    def __new__(cls, name, value=None):
        return super(Parameter, cls).__new__(cls, name, real=True,
                                             nonnegative=True)

    def __getnewargs__(self):
        return (self.name, self.value)

    def __init__(self, name, value=None):
        Component.__init__(self, name)
        self.value = value

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, new_value):
        if new_value is not None:
            new_value = self.check_value(new_value)
        self._value = new_value

    def check_value(self, value):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ModelError('Parameter %s: value %r is not a number' % (
                self.name, value))
        if not np.isfinite(value):
            raise ModelError('Parameter %s: value must be finite' % self.name)
        if value < 0:
            raise ModelError('Cannot assign a negative value to parameter %s'
                             % self.name)
        return value

    def __repr__(self):
        return '%s(%s, %s)' % (self.__class__.__name__, repr(self.name),
                               repr(self.value))

    def __str__(self):
        return repr(self)


class ComponentSet(Set, Mapping, Sequence):
    """
    An add-and-read-only container for storing network Components.

    It behaves mostly like an ordered set, but components can also be retrieved
    by name *or* index by using the [] operator (like a combination of a dict
    and a list). Components cannot be removed or replaced. Iteration returns
    the component objects.

    Parameters
    ----------
    iterable : iterable of Components, optional
        Initial contents of the set.

    """

    # The implementation is based on a list instead of a linked list (as
    # OrderedSet is), since we only allow add and retrieve, not delete.

    def __init__(self, iterable=None):
        self._elements = []
        self._map = {}
        self._index_map = {}
        self._frozen = False
        if iterable is not None:
            for value in iterable:
                self.add(value)

    def __iter__(self):
        return iter(self._elements)

    def __contains__(self, c):
        if isinstance(c, str):
            return c in self._map
        if not isinstance(c, Component):
            raise TypeError("Can only work with Components, got a %s" % type(c))
        return c.name in self._map and self[c.name] is c

    def __len__(self):
        return len(self._elements)

    def add(self, c):
        if self._frozen:
            raise ModelError("Cannot add %s, the network is already built"
                             % c.name)
        if c not in self:
            if c.name in self._map:
                raise ComponentDuplicateNameError(
                    "Tried to add a component with a duplicate name: %s"
                    % c.name)
            self._elements.append(c)
            self._map[c.name] = c
            self._index_map[c.name] = len(self._elements) - 1

    def __getitem__(self, key):
        # Must support both Sequence and Mapping behavior. Component names
        # must be valid Python identifiers, so integers are ruled out as names.
        if isinstance(key, (numbers.Integral, slice)):
            return self._elements[key]
        else:
            return self._map[key]

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError("Network has no component '%s'" % name)

    def freeze(self):
        """ Disallow further additions """
        self._frozen = True

    def __setstate__(self, state):
        self.__dict__ = state

    def __dir__(self):
        return self.keys()

    def get(self, key, default=None):
        if isinstance(key, numbers.Integral):
            raise ValueError("get is undefined for integer arguments, use []"
                             "instead")
        try:
            return self[key]
        except KeyError:
            return default

    def keys(self):
        return [c.name for c in self]

    def values(self):
        return [c for c in self]

    def items(self):
        return list(zip(self.keys(), self))

    def index(self, c):
        # O(1) lookup by name; also accepts the name itself
        name = c if isinstance(c, str) else c.name
        if name not in self._index_map or (
                not isinstance(c, str) and c not in self):
            raise ValueError("%s is not in ComponentSet" % name)
        return self._index_map[name]

    def __repr__(self):
        return 'ComponentSet([\n' + \
            ''.join(' %s,\n' % repr(x) for x in self) + \
            ' ])'


def _component_name(obj, component_cls, description):
    """ Name of a component given either the component or its name """
    if isinstance(obj, component_cls):
        return obj.name
    if isinstance(obj, str):
        if not Component._VARIABLE_NAME_REGEX.match(obj):
            raise InvalidComponentNameError(obj)
        return obj
    raise ModelError('Expected a %s or a name for %s, got %r' % (
        component_cls.__name__, description, obj))


class RateLaw(object):
    """ Base class for reaction rate laws """

    def parameter_names(self):
        """ Names of the parameters this rate law references """
        raise NotImplementedError


class MassAction(RateLaw):

    """
    Mass action kinetics with a single rate constant.

    Parameters
    ----------
    rate_constant : Parameter, string or number
        The rate constant. A string names a parameter of the network. A bare
        number is turned into a Parameter named after the reaction (e.g.
        ``degrade_A_k``) when the network is built, so it can still be
        overridden at simulation time.

    """

    def __init__(self, rate_constant):
        if isinstance(rate_constant, (Parameter, str)):
            _component_name(rate_constant, Parameter, 'a rate constant')
        elif isinstance(rate_constant, numbers.Real) and \
                not isinstance(rate_constant, bool):
            rate_constant = float(rate_constant)
            if not np.isfinite(rate_constant) or rate_constant < 0:
                raise ModelError('Mass action rate constant must be finite '
                                 'and non-negative, got %r' % rate_constant)
        else:
            raise ModelError('Mass action rate constant must be a Parameter, '
                             'a parameter name or a number, got %r'
                             % (rate_constant, ))
        self.rate_constant = rate_constant

    def parameter_names(self):
        if isinstance(self.rate_constant, float):
            return []
        return [_component_name(self.rate_constant, Parameter,
                                'a rate constant')]

    def __repr__(self):
        rc = self.rate_constant
        return '%s(%s)' % (self.__class__.__name__,
                           repr(rc.name if isinstance(rc, Parameter) else rc))


class Custom(RateLaw):

    """
    A user-supplied rate law with explicit arguments.

    The rate function receives the current values of ``species`` followed
    by the values of ``parameters``, in the order given, and must return a
    non-negative number. No combinatorial correction is applied: the
    function itself must return 0 when its inputs are exhausted, if that is
    required.

    Parameters
    ----------
    function : callable, sympy.Expr or string
        The rate law. A string is parsed with sympy; a string or sympy
        expression may only reference the declared species and parameters.
        Callables built from arithmetic operators (such as
        :func:`crnsim.kinetics.hill_repression`) can also be traced
        symbolically, which the ODE simulator uses when available.
        Callables should be module-level functions if the network is to be
        simulated with several processes.
    species : sequence of Species or names
        Species arguments.
    parameters : sequence of Parameter or names
        Parameter arguments.

    Examples
    --------
    Hill repression of a reaction by species ``P``:

    >>> from crnsim.kinetics import hill_repression
    >>> Custom(hill_repression, ['P'], ['vmax', 'K', 'n'])
    Custom(hill_repression, species=['P'], parameters=['vmax', 'K', 'n'])

    The same rate law as an expression:

    >>> Custom('vmax / (1 + (P / K)**n)', ['P'], ['vmax', 'K', 'n'])
    Custom('vmax/((P/K)**n + 1)', species=['P'], parameters=['vmax', 'K', 'n'])

    """

    def __init__(self, function, species=(), parameters=()):
        if isinstance(species, (str, Species)):
            species = [species]
        if isinstance(parameters, (str, Parameter)):
            parameters = [parameters]
        self.species = [_component_name(s, Species, 'a custom rate species')
                        for s in species]
        self.parameters = [_component_name(p, Parameter,
                                           'a custom rate parameter')
                           for p in parameters]
        argument_names = self.species + self.parameters
        if len(set(argument_names)) != len(argument_names):
            raise ModelError('Custom rate law arguments must be unique: %s'
                             % ', '.join(argument_names))
        self._numeric = None

        if isinstance(function, (str, sympy.Basic)):
            self._placeholders = [sympy.Symbol(name) for name in
                                  argument_names]
            if isinstance(function, str):
                try:
                    expression = sympy.sympify(function, locals=dict(
                        zip(argument_names, self._placeholders)))
                except (sympy.SympifyError, SyntaxError, TypeError) as e:
                    raise ModelError('Cannot parse rate expression %r: %s'
                                     % (function, e))
            else:
                expression = function.xreplace({
                    s: sympy.Symbol(s.name) for s in function.free_symbols})
            undeclared = sorted(s.name for s in expression.free_symbols
                                if s.name not in argument_names)
            if undeclared:
                raise ModelError('Rate expression %s references undeclared '
                                 'symbol(s): %s' % (expression,
                                                    ', '.join(undeclared)))
            self.expression = expression
            self.function = None
        elif callable(function):
            try:
                inspect.signature(function).bind(*argument_names)
            except TypeError:
                raise ModelError('Rate function %s cannot accept the %d '
                                 'declared argument(s): %s' % (
                                     getattr(function, '__name__', function),
                                     len(argument_names),
                                     ', '.join(argument_names)))
            except ValueError:
                # Some builtins have no signature; checked on first call
                pass
            self.expression = None
            self.function = function
        else:
            raise ModelError('Custom rate law must be a callable, a sympy '
                             'expression or a string, got %r' % (function, ))

    def parameter_names(self):
        return list(self.parameters)

    @property
    def numeric_function(self):
        """ Callable f(*species_values, *parameter_values) """
        if self.function is not None:
            return self.function
        if self._numeric is None:
            self._numeric = sympy.lambdify(self._placeholders,
                                           self.expression, 'numpy',
                                           dummify=True)
        return self._numeric

    def evaluate(self, species_values, parameter_values):
        """
        Evaluate the rate law

        Raises ModelError if the rate law returns a negative (or NaN)
        value. This cannot be checked when the network is constructed.
        """
        value = float(self.numeric_function(*species_values,
                                            *parameter_values))
        if not value >= 0:
            raise ModelError('Custom rate law %r returned an invalid value '
                             '%r for arguments %s' % (
                                 self, value,
                                 dict(zip(self.species + self.parameters,
                                          list(species_values) +
                                          list(parameter_values)))))
        return value

    def symbolic(self, symbols):
        """
        Sympy form of the rate law

        Parameters
        ----------
        symbols : list of sympy.Symbol
            Symbols to substitute for the species then parameter arguments.
        """
        if self.expression is not None:
            return self.expression.xreplace(
                dict(zip(self._placeholders, symbols)))
        try:
            return sympy.sympify(self.function(*symbols))
        except (TypeError, ValueError, AttributeError,
                sympy.SympifyError) as e:
            raise ModelError('Rate function %s cannot be expressed '
                             'symbolically: %s' % (
                                 getattr(self.function, '__name__',
                                         self.function), e))

    def __getstate__(self):
        state = self.__dict__.copy()
        # lambdified functions are not picklable; rebuilt on demand
        state['_numeric'] = None
        return state

    def __repr__(self):
        if self.function is not None:
            fn = getattr(self.function, '__name__', repr(self.function))
        else:
            fn = repr(str(self.expression))
        return '%s(%s, species=%r, parameters=%r)' % (
            self.__class__.__name__, fn, self.species, self.parameters)


def _as_stoichiometry(value, description):
    """ Normalize a stoichiometry clause to an ordered name->coefficient map """
    stoich = collections.OrderedDict()
    declared = {}
    if value is None:
        return stoich, declared
    if isinstance(value, (str, Species)):
        items = [(value, 1)]
    elif isinstance(value, Mapping):
        items = value.items()
    elif isinstance(value, Iterable):
        items = [(v, 1) for v in value]
    else:
        raise ModelError('Cannot interpret %r as %s stoichiometry' % (
            value, description))
    for sp, coefficient in items:
        name = _component_name(sp, Species, description)
        if isinstance(sp, Species):
            declared.setdefault(name, sp)
        if isinstance(coefficient, bool) or \
                not isinstance(coefficient, numbers.Real):
            raise ModelError('Stoichiometric coefficient of %s in %s must be '
                             'a non-negative integer, got %r' % (
                                 name, description, coefficient))
        if not float(coefficient).is_integer():
            raise ModelError('Stoichiometric coefficient of %s in %s must be '
                             'an integer, got %r' % (name, description,
                                                     coefficient))
        if coefficient < 0:
            raise ModelError('Stoichiometric coefficient of %s in %s must be '
                             'non-negative, got %r' % (name, description,
                                                       coefficient))
        stoich[name] = stoich.get(name, 0) + int(coefficient)
    for name in [n for n, c in stoich.items() if c == 0]:
        del stoich[name]
    return stoich, declared


def as_rate_law(rate):
    """ Convert a rate law shorthand into a RateLaw """
    if isinstance(rate, RateLaw):
        return rate
    return MassAction(rate)


class Reaction(Component):

    """
    A reaction clause: reactant stoichiometry, product stoichiometry, rate.

    Parameters
    ----------
    reactants, products : None, Species, string, sequence or mapping
        Stoichiometry. None means no species (e.g. the reactants of a
        synthesis reaction). A single species has coefficient 1. In a
        sequence, repeated species add up. A mapping gives
        species -> coefficient explicitly. Coefficients must be non-negative
        integers.
    rate : RateLaw, Parameter, string or number
        :class:`MassAction` or :class:`Custom`. Anything else is used as
        the rate constant of a :class:`MassAction` law.
    name : string, optional
        Reaction name. Unnamed reactions are named ``r<index>`` by the
        network.

    Examples
    --------
    >>> Reaction(None, 'mRNA', 10.0, name='transcription')
    Reaction(None >> {'mRNA': 1}, MassAction(10.0), name='transcription')
    >>> Reaction({'A': 2}, 'A2', 'kdim')
    Reaction({'A': 2} >> {'A2': 1}, MassAction('kdim'))

    """

    def __init__(self, reactants, products, rate, name=None):
        if name is None:
            self.name = None
        else:
            Component.__init__(self, name)
        self.reactants, reactant_species = _as_stoichiometry(reactants,
                                                             'reactants')
        self.products, product_species = _as_stoichiometry(products,
                                                           'products')
        self._species_objects = reactant_species
        for sp_name, sp in product_species.items():
            self._species_objects.setdefault(sp_name, sp)
        self.rate = as_rate_law(rate)

    def is_synth(self):
        """ True if the reaction has no reactants """
        return not self.reactants

    def is_deg(self):
        """ True if the reaction has no products """
        return not self.products

    def __repr__(self):
        lhs = dict(self.reactants) if self.reactants else None
        rhs = dict(self.products) if self.products else None
        ret = '%s(%r >> %r, %r' % (self.__class__.__name__, lhs, rhs,
                                   self.rate)
        if self.name is not None:
            ret += ', name=%r' % self.name
        return ret + ')'


class ReactionNetwork(object):

    """
    An immutable chemical reaction network.

    Species are discovered by first appearance in the reaction
    stoichiometries (after any explicitly declared species) and parameters by
    first appearance in the rate laws (after any explicitly declared
    parameters). All symbols are validated eagerly.

    Parameters
    ----------
    reactions : iterable of Reaction or tuple
        Reaction clauses, in order. Tuples are passed to :class:`Reaction`
        as positional arguments.
    species : iterable of Species or names, optional
        Species declared up front. Needed for species which only appear as
        custom rate law arguments, or to fix the species order or initial
        amounts.
    parameters : iterable of Parameter or names, optional
        If given, every parameter referenced by a rate law must be in this
        list (bare numeric rate constants excepted), and the parameter order
        starts with it.
    name : string, optional
        Name used in log messages. Defaults to 'network'.

    Attributes
    ----------
    species, parameters, reactions : ComponentSet
        The components of the network, addressable by name or index.

    Examples
    --------
    A gene expression network:

    >>> net = ReactionNetwork([
    ...     Reaction(None, 'mRNA', 'kr'),
    ...     Reaction('mRNA', None, 'gr'),
    ...     Reaction('mRNA', ['mRNA', 'protein'], 'kp'),
    ...     Reaction('protein', None, 'gp'),
    ... ], name='gene_expression')
    >>> net.species.keys()
    ['mRNA', 'protein']
    >>> net.parameters.keys()
    ['kr', 'gr', 'kp', 'gp']
    >>> net.net_change(2)
    array([0, 1])

    """

    def __init__(self, reactions, species=None, parameters=None, name=None):
        self.name = name if name is not None else 'network'
        self.species = ComponentSet()
        self.parameters = ComponentSet()
        self.reactions = ComponentSet()
        self._strict_parameters = parameters is not None

        for sp in species or []:
            if not isinstance(sp, Species):
                sp = Species(_component_name(sp, Species, 'a species'))
            self._add(self.species, sp)
        for p in parameters or []:
            if not isinstance(p, Parameter):
                p = Parameter(_component_name(p, Parameter, 'a parameter'))
            self._add(self.parameters, p)

        # First pass: reaction names and stoichiometry (species discovery)
        for i, clause in enumerate(reactions):
            if isinstance(clause, tuple):
                clause = Reaction(*clause)
            elif not isinstance(clause, Reaction):
                raise ModelError('Reaction %d is not a Reaction or a tuple: '
                                 '%r' % (i, clause))
            reaction = copy.copy(clause)
            reaction.reactants = collections.OrderedDict(reaction.reactants)
            reaction.products = collections.OrderedDict(reaction.products)
            if reaction.name is None:
                reaction.name = 'r%d' % i
            self._add(self.reactions, reaction)
            for sp_name in list(reaction.reactants) + list(reaction.products):
                if sp_name not in self.species:
                    sp = reaction._species_objects.get(sp_name)
                    if sp is None:
                        sp = Species(sp_name)
                    self._add(self.species, sp)

        # Second pass: rate laws (parameter discovery)
        self._rate_parameter_index = []
        self._custom_arguments = []
        for reaction in self.reactions:
            rate = reaction.rate
            if isinstance(rate, MassAction):
                if isinstance(rate.rate_constant, float):
                    param = Parameter('%s_k' % reaction.name,
                                      rate.rate_constant)
                    self._add(self.parameters, param)
                else:
                    param = self._resolve_parameter(rate.rate_constant,
                                                    reaction)
                self._rate_parameter_index.append(
                    self.parameters.index(param))
                self._custom_arguments.append(None)
            else:
                sp_idx = []
                for sp_name in rate.species:
                    if sp_name not in self.species:
                        raise ModelError(
                            'Reaction %s: rate law references undeclared '
                            'species %s' % (reaction.name, sp_name))
                    sp_idx.append(self.species.index(sp_name))
                p_idx = [self.parameters.index(
                    self._resolve_parameter(p_name, reaction))
                    for p_name in rate.parameters]
                self._rate_parameter_index.append(None)
                self._custom_arguments.append((np.array(sp_idx, dtype=int),
                                               np.array(p_idx, dtype=int)))

        clash = set(self.species.keys()) & set(self.parameters.keys())
        if clash:
            raise ModelError('Names used for both species and parameters: %s'
                             % ', '.join(sorted(clash)))

        shape = (len(self.reactions), len(self.species))
        self._reactant_matrix = np.zeros(shape, dtype=np.int64)
        self._product_matrix = np.zeros(shape, dtype=np.int64)
        for i, reaction in enumerate(self.reactions):
            for sp_name, c in reaction.reactants.items():
                self._reactant_matrix[i, self.species.index(sp_name)] = c
            for sp_name, c in reaction.products.items():
                self._product_matrix[i, self.species.index(sp_name)] = c
        self._net_change = self._product_matrix - self._reactant_matrix
        for arr in (self._reactant_matrix, self._product_matrix,
                    self._net_change):
            arr.flags.writeable = False
        self._stoichiometry_matrix = None
        self._dependency_graph = None
        for component_set in (self.species, self.parameters, self.reactions):
            component_set.freeze()

    @staticmethod
    def _add(component_set, component):
        try:
            component_set.add(component)
        except ComponentDuplicateNameError as e:
            raise ModelError(str(e))

    def _resolve_parameter(self, param, reaction):
        name = _component_name(param, Parameter, 'a rate constant')
        if name in self.parameters:
            return self.parameters[name]
        if self._strict_parameters:
            raise ModelError('Reaction %s references undeclared parameter %s'
                             % (reaction.name, name))
        if not isinstance(param, Parameter):
            param = Parameter(name)
        self._add(self.parameters, param)
        return param

    @property
    def n_species(self):
        return len(self.species)

    @property
    def n_parameters(self):
        return len(self.parameters)

    @property
    def n_reactions(self):
        return len(self.reactions)

    @property
    def reactant_matrix(self):
        """ Reactant coefficients, shape (n_reactions, n_species) """
        return self._reactant_matrix

    @property
    def product_matrix(self):
        """ Product coefficients, shape (n_reactions, n_species) """
        return self._product_matrix

    @property
    def net_change_matrix(self):
        """ Net stoichiometric change, shape (n_reactions, n_species) """
        return self._net_change

    @property
    def stoichiometry_matrix(self):
        """Return the stoichiometry matrix (species x reactions, sparse)."""
        if self._stoichiometry_matrix is None:
            self._stoichiometry_matrix = scipy.sparse.csr_matrix(
                self._net_change.T)
        return self._stoichiometry_matrix

    def net_change(self, index):
        """ Net change vector of reaction ``index`` (name or int) """
        return self._net_change[self._reaction_index(index)].copy()

    def species_index(self, species):
        """ Index of a species, given the Species or its name """
        try:
            return self.species.index(species)
        except ValueError:
            raise ModelError('Unknown species: %s' % species)

    def _reaction_index(self, index):
        if isinstance(index, numbers.Integral):
            return int(index)
        return self.reactions.index(index)

    def rate_reads(self, index):
        """ Indices of the species read by the rate law of a reaction """
        index = self._reaction_index(index)
        args = self._custom_arguments[index]
        if args is None:
            return np.flatnonzero(self._reactant_matrix[index])
        return np.unique(args[0])

    @property
    def dependency_graph(self):
        """
        Reaction dependency graph (networkx.DiGraph)

        Nodes are reaction indices. An edge ``i -> j`` means firing ``i``
        changes at least one species read by the rate law of ``j``, so the
        propensity of ``j`` must be recomputed after ``i`` fires.
        """
        if self._dependency_graph is None:
            graph = nx.DiGraph()
            graph.add_nodes_from(range(self.n_reactions))
            readers = collections.defaultdict(set)
            for j in range(self.n_reactions):
                for s in self.rate_reads(j):
                    readers[s].add(j)
            for i in range(self.n_reactions):
                for s in np.flatnonzero(self._net_change[i]):
                    graph.add_edges_from((i, j) for j in readers[s])
            self._dependency_graph = graph
        return self._dependency_graph

    def dependents(self, index):
        """ Reactions whose propensity changes when ``index`` fires """
        return sorted(self.dependency_graph.successors(
            self._reaction_index(index)))

    def param_values(self, overrides=None):
        """
        Resolve a full parameter vector

        Parameters
        ----------
        overrides : vector-like or dict, optional
            A full vector of parameter values (ordered like
            ``self.parameters``), or a dict of parameter name -> value
            overriding the declared values.

        Returns
        -------
        numpy.ndarray
            One value per parameter.

        Raises ModelError if a parameter has no value, or a value is
        negative or not finite.
        """
        if overrides is not None and not isinstance(overrides, Mapping):
            values = np.array(overrides, dtype=float)
            if values.shape != (self.n_parameters, ):
                raise ModelError('Parameter vector must have length %d, got '
                                 'shape %s' % (self.n_parameters,
                                               values.shape))
            if not np.isfinite(values).all() or (values < 0).any():
                raise ModelError('Parameter values must be finite and '
                                 'non-negative: %s' % values)
            return values
        overrides = overrides or {}
        unknown = set(overrides) - set(self.parameters.keys())
        if unknown:
            raise ModelError('Unknown parameter(s): %s' % ', '.join(
                sorted(unknown)))
        values = np.empty(self.n_parameters)
        for i, p in enumerate(self.parameters):
            if p.name in overrides:
                value = p.check_value(overrides[p.name])
            else:
                value = p.value
            if value is None:
                raise ModelError('No value supplied for parameter %s' %
                                 p.name)
            values[i] = value
        return values

    def propensity(self, index, state, param_values=None, stochastic=True):
        """
        Propensity of one reaction

        Parameters
        ----------
        index : int or string
            Reaction index or name.
        state : vector-like
            Species amounts, ordered like ``self.species``.
        param_values : vector-like or dict, optional
            See :func:`param_values`.
        stochastic : bool, optional (default: True)
            Combinatorial mass action form if True (discrete counts), power
            law if False (continuous amounts). Custom rate laws are
            evaluated as is.
        """
        index = self._reaction_index(index)
        params = self.param_values(param_values)
        state = np.asarray(state, dtype=float)
        args = self._custom_arguments[index]
        if args is None:
            reactants = self._reactant_matrix[index]
            idx = np.flatnonzero(reactants)
            return kinetics.mass_action_propensity(
                params[self._rate_parameter_index[index]], state[idx],
                reactants[idx], stochastic=stochastic)
        return self.reactions[index].rate.evaluate(state[args[0]],
                                                   params[args[1]])

    def kinetics(self, stochastic=False):
        """
        Symbolic rate of each reaction (list of sympy expressions)

        Mass action rates use the power law unless ``stochastic`` is True.
        Raises ModelError if a custom rate function cannot be traced with
        sympy symbols.
        """
        rates = []
        for i, reaction in enumerate(self.reactions):
            args = self._custom_arguments[i]
            if args is None:
                k = self.parameters[self._rate_parameter_index[i]]
                rates.append(kinetics.mass_action_expression(
                    k, [(self.species[s], c) for s, c in enumerate(
                        self._reactant_matrix[i]) if c],
                    stochastic=stochastic))
            else:
                symbols = [self.species[int(s)] for s in args[0]] + \
                          [self.parameters[int(p)] for p in args[1]]
                rates.append(reaction.rate.symbolic(symbols))
        return rates

    @property
    def odes(self):
        """ sympy expressions for the time derivative of each species """
        rates = self.kinetics(stochastic=False)
        odes = []
        for s in range(self.n_species):
            terms = [int(c) * rates[i] for i, c in enumerate(
                self._net_change[:, s]) if c]
            odes.append(sympy.Add(*terms))
        return odes

    @property
    def is_symbolic(self):
        """ True if every rate law can be expressed with sympy """
        try:
            self.kinetics()
        except ModelError:
            return False
        return True

    def __repr__(self):
        return ("<%s '%s' (species: %d, reactions: %d, parameters: %d) "
                "at 0x%x>" % (self.__class__.__name__, self.name,
                              self.n_species, self.n_reactions,
                              self.n_parameters, id(self)))
