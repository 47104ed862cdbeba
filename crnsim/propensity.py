"""
Propensity evaluation for all reactions of a network at once.

:class:`PropensityEvaluator` binds a :class:`crnsim.core.ReactionNetwork` to
one parameter vector and evaluates reaction propensities from a state
vector. Mass action reactions are evaluated together with numpy; custom rate
laws are called directly. The stochastic simulators use :func:`update` to
recompute only the propensities affected by the last reaction fired.
"""

import numpy as np

from crnsim import kinetics
from crnsim.core import MassAction


class PropensityEvaluator(object):
    """
    Evaluate the propensities of a network's reactions

    Parameters
    ----------
    network : crnsim.ReactionNetwork
        The network. It is only read.
    param_values : vector-like or dict, optional
        Parameter values (see :func:`ReactionNetwork.param_values`).
    stochastic : bool, optional (default: True)
        Use the combinatorial mass action form (discrete molecule counts)
        if True, the power law (continuous amounts) if False.

    Examples
    --------
    >>> from crnsim.examples.gene_expression import network
    >>> evaluator = PropensityEvaluator(network)
    >>> evaluator([10, 5])
    array([10.   ,  1.   , 10.   ,  0.005])
    """

    def __init__(self, network, param_values=None, stochastic=True):
        self.network = network
        self.stochastic = stochastic
        self.param_values = network.param_values(param_values)
        reactant_matrix = network.reactant_matrix

        self._mass_action = np.array(
            [i for i, r in enumerate(network.reactions)
             if isinstance(r.rate, MassAction)], dtype=int)
        self._custom = [i for i, r in enumerate(network.reactions)
                        if not isinstance(r.rate, MassAction)]
        self._is_mass_action = np.zeros(network.n_reactions, dtype=bool)
        self._is_mass_action[self._mass_action] = True

        self._rate_constants = np.zeros(network.n_reactions)
        for i in self._mass_action:
            self._rate_constants[i] = self.param_values[
                network._rate_parameter_index[i]]

        # Only the species which take part as reactants matter to mass action
        self._reactant_columns = np.flatnonzero(
            reactant_matrix[self._mass_action].any(axis=0))
        self._reactants = reactant_matrix[
            np.ix_(self._mass_action, self._reactant_columns)]
        self._reactant_lists = [
            (np.flatnonzero(reactant_matrix[i]),
             reactant_matrix[i][np.flatnonzero(reactant_matrix[i])])
            for i in range(network.n_reactions)]

        self._custom_args = {
            i: (network.reactions[i].rate,
                network._custom_arguments[i][0],
                self.param_values[network._custom_arguments[i][1]])
            for i in self._custom}

    @property
    def n_reactions(self):
        return self.network.n_reactions

    def __call__(self, state):
        """ Propensities of all reactions, as a new array """
        state = np.asarray(state, dtype=float)
        propensities = np.empty(self.n_reactions)
        if len(self._mass_action):
            counts = state[self._reactant_columns]
            if self.stochastic:
                factors = kinetics.choose(counts, self._reactants)
            else:
                factors = np.power(counts, self._reactants)
            propensities[self._mass_action] = \
                self._rate_constants[self._mass_action] * factors.prod(axis=1)
        for i in self._custom:
            propensities[i] = self._evaluate_custom(i, state)
        return propensities

    def _evaluate_custom(self, index, state):
        rate, species_idx, params = self._custom_args[index]
        return rate.evaluate(state[species_idx], params)

    def evaluate(self, index, state):
        """ Propensity of a single reaction """
        if self._is_mass_action[index]:
            species_idx, coefficients = self._reactant_lists[index]
            return kinetics.mass_action_propensity(
                self._rate_constants[index],
                np.asarray(state, dtype=float)[species_idx], coefficients,
                stochastic=self.stochastic)
        return self._evaluate_custom(index, np.asarray(state, dtype=float))

    def update(self, state, propensities, indices):
        """
        Recompute the propensities of some reactions in place

        Parameters
        ----------
        state : numpy.ndarray
            Current state.
        propensities : numpy.ndarray
            Propensity vector to update.
        indices : iterable of int
            Reactions to recompute, typically
            ``network.dependents(fired_reaction)``.
        """
        for i in indices:
            propensities[i] = self.evaluate(i, state)
        return propensities
