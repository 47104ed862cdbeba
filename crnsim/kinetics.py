"""
Numerical and symbolic building blocks for reaction rate laws.

Mass action kinetics come in two conventions. Stochastic (discrete count)
propensities use the number of distinct reactant combinations,
``k * prod(C(n_i, c_i))``, which is exactly zero whenever fewer than ``c_i``
molecules of a reactant are present. Deterministic (continuous
concentration) rates use the power law ``k * prod(n_i ** c_i)``.

The Hill functions below work equally on floats, numpy arrays and sympy
symbols, so they can be passed straight to :class:`crnsim.core.Custom`.
"""

import numpy as np
import scipy.special
import sympy


def choose(n, c):
    """
    Number of ways to choose ``c`` molecules out of ``n``

    Vectorized over numpy arrays. Returns 0 when ``n < c``.
    """
    return scipy.special.comb(n, c)


def mass_action_propensity(k, counts, coefficients, stochastic=True):
    """
    Mass action propensity of a single reaction

    Parameters
    ----------
    k : float
        Rate constant.
    counts : vector-like
        Current amounts of the reactant species.
    coefficients : vector-like
        Reactant stoichiometric coefficients, aligned with ``counts``.
    stochastic : bool, optional (default: True)
        Use the combinatorial (discrete) form if True, or the power law
        (continuous) form if False.

    Returns
    -------
    float
        The propensity. Zeroth order reactions (no reactants) return ``k``.
    """
    counts = np.asarray(counts, dtype=float)
    coefficients = np.asarray(coefficients)
    if stochastic:
        factors = choose(counts, coefficients)
    else:
        factors = np.power(counts, coefficients)
    return k * float(np.prod(factors))


def mass_action_expression(k, reactants, stochastic=False):
    """
    Symbolic mass action rate

    Parameters
    ----------
    k : sympy.Expr
        Rate constant symbol.
    reactants : iterable of (sympy.Symbol, int)
        Reactant symbols and their stoichiometric coefficients.
    stochastic : bool, optional (default: False)
        Build the combinatorial form ``k * prod(n (n-1) ... (n-c+1) / c!)``
        if True, otherwise the power law ``k * prod(n**c)``.
    """
    terms = [k]
    for symbol, coefficient in reactants:
        if stochastic:
            falling = sympy.Mul(*[symbol - j for j in range(coefficient)])
            terms.append(falling / sympy.factorial(coefficient))
        else:
            terms.append(symbol ** coefficient)
    return sympy.Mul(*terms)


def hill_repression(x, vmax, k, n):
    """ Hill repression: ``vmax / (1 + (x / k)**n)`` """
    return vmax / (1 + (x / k) ** n)


def hill_activation(x, vmax, k, n):
    """ Hill activation: ``vmax * x**n / (k**n + x**n)`` """
    return vmax * x ** n / (k ** n + x ** n)
