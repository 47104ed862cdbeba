"""
A collection of generally useful reaction patterns.

Each macro returns a list of :class:`crnsim.core.Reaction` clauses with
automatically generated names, ready to be concatenated into the reaction
list of a :class:`crnsim.core.ReactionNetwork`.

Rates may be Parameters, parameter names, numbers or rate laws. When a
number is passed, the network creates a Parameter named after the generated
reaction with a ``_k`` suffix (e.g. ``degrade_A_k``), so the value can still
be overridden at simulation time.

Examples
--------
>>> from crnsim import ReactionNetwork
>>> net = ReactionNetwork(synthesize('A', 10.0) + degrade('A', 0.1))
>>> net.parameters # doctest:+NORMALIZE_WHITESPACE
ComponentSet([
 Parameter('synthesize_A_k', 10.0),
 Parameter('degrade_A_k', 0.1),
 ])
"""

from crnsim.core import Reaction, Species, ModelError, _component_name

__all__ = ['synthesize', 'degrade', 'convert', 'equilibrate', 'bind',
           'catalyze', 'catalyze_one_step', 'synthesize_degrade_table']


def _name(species):
    return _component_name(species, Species, 'a macro species')


def _rates(klist, count, macro):
    if not isinstance(klist, (list, tuple)):
        klist = [klist]
    if len(klist) != count:
        raise ModelError('%s requires %d rate(s), got %d' % (macro, count,
                                                              len(klist)))
    return klist


def synthesize(species, ksynth):
    """
    Generate a reaction which synthesizes a species.

    Parameters
    ----------
    species : Species or string
        The species to synthesize.
    ksynth : Parameter, string, number or rate law
        Synthesis rate.

    Returns
    -------
    list of Reaction
        A single zeroth order reaction ``None >> species``.

    Examples
    --------
    >>> synthesize('A', 1e-4)
    [Reaction(None >> {'A': 1}, MassAction(0.0001), name='synthesize_A')]

    """
    return [Reaction(None, species, ksynth,
                     name='synthesize_%s' % _name(species))]


def degrade(species, kdeg):
    """
    Generate a reaction which degrades a species.

    Parameters
    ----------
    species : Species or string
        The species to degrade.
    kdeg : Parameter, string, number or rate law
        Degradation rate.

    Returns
    -------
    list of Reaction
        A single first order reaction ``species >> None``.

    Examples
    --------
    >>> degrade('B', 'kdeg')
    [Reaction({'B': 1} >> None, MassAction('kdeg'), name='degrade_B')]

    """
    return [Reaction(species, None, kdeg,
                     name='degrade_%s' % _name(species))]


def convert(s1, s2, kf):
    """
    Generate an irreversible conversion ``s1 >> s2``.

    Examples
    --------
    >>> convert('A', 'B', 0.5)
    [Reaction({'A': 1} >> {'B': 1}, MassAction(0.5), name='convert_A_to_B')]

    """
    return [Reaction(s1, s2, kf, name='convert_%s_to_%s' % (_name(s1),
                                                            _name(s2)))]


def equilibrate(s1, s2, klist):
    """
    Generate a reversible conversion ``s1 <> s2``.

    Parameters
    ----------
    s1, s2 : Species or string
        The two species.
    klist : list of 2 rates
        Forward (s1 to s2) and reverse (s2 to s1) rates.

    Returns
    -------
    list of Reaction
        The forward and reverse reactions.
    """
    kf, kr = _rates(klist, 2, 'equilibrate')
    return convert(s1, s2, kf) + convert(s2, s1, kr)


def bind(s1, s2, complex_, klist):
    """
    Generate a reversible binding reaction ``s1 + s2 <> complex_``.

    If ``s1`` and ``s2`` are the same species, the forward reaction is a
    dimerization with a reactant coefficient of 2.

    Parameters
    ----------
    s1, s2 : Species or string
        The binding partners.
    complex_ : Species or string
        The bound complex.
    klist : list of 2 rates
        Association and dissociation rates.

    Returns
    -------
    list of Reaction
        The association and dissociation reactions.

    Examples
    --------
    >>> bind('A', 'A', 'A2', [1e-3, 0.1]) \
        # doctest:+NORMALIZE_WHITESPACE
    [Reaction({'A': 2} >> {'A2': 1}, MassAction(0.001), name='bind_A_A'),
     Reaction({'A2': 1} >> {'A': 2}, MassAction(0.1), name='dissociate_A2')]

    """
    kf, kr = _rates(klist, 2, 'bind')
    partners = [_name(s1), _name(s2)]
    return [
        Reaction(partners, complex_, kf, name='bind_%s_%s' % tuple(partners)),
        Reaction(complex_, partners, kr,
                 name='dissociate_%s' % _name(complex_)),
    ]


def catalyze(enzyme, substrate, product, klist):
    """
    Generate the two-step catalytic reaction E + S <> ES >> E + P.

    The enzyme-substrate complex is named ``<enzyme>_<substrate>``.

    Parameters
    ----------
    enzyme, substrate, product : Species or string
        Enzyme, substrate and product species.
    klist : list of 3 rates
        Binding, unbinding and catalytic rates.

    Returns
    -------
    list of Reaction
        Binding, unbinding and catalysis reactions.
    """
    kf, kr, kc = _rates(klist, 3, 'catalyze')
    e, s, p = _name(enzyme), _name(substrate), _name(product)
    complex_ = '%s_%s' % (e, s)
    return bind(e, s, complex_, [kf, kr]) + [
        Reaction(complex_, [e, p], kc, name='catalyze_%s_to_%s' % (complex_,
                                                                   p))]


def catalyze_one_step(enzyme, substrate, product, kf):
    """
    Generate the one-step catalytic reaction E + S >> E + P.

    Examples
    --------
    >>> catalyze_one_step('E', 'S', 'P', 'kcat')
    [Reaction({'E': 1, 'S': 1} >> {'E': 1, 'P': 1}, MassAction('kcat'), \
name='catalyze_E_S_to_P')]

    """
    e, s, p = _name(enzyme), _name(substrate), _name(product)
    return [Reaction([e, s], [e, p], kf,
                     name='catalyze_%s_%s_to_%s' % (e, s, p))]


def synthesize_degrade_table(table):
    """
    Generate a table of synthesis and degradation reactions.

    Parameters
    ----------
    table : list of lists
        Each row is ``[species, ksynth, kdeg]``. Pass None in place of a
        rate to omit that reaction.

    Returns
    -------
    list of Reaction

    Examples
    --------
    >>> synthesize_degrade_table([['A', 1.0, 0.1],
    ...                           ['B', None, 0.2]]) \
        # doctest:+NORMALIZE_WHITESPACE
    [Reaction(None >> {'A': 1}, MassAction(1.0), name='synthesize_A'),
     Reaction({'A': 1} >> None, MassAction(0.1), name='degrade_A'),
     Reaction({'B': 1} >> None, MassAction(0.2), name='degrade_B')]

    """
    reactions = []
    for species, ksynth, kdeg in table:
        if ksynth is not None:
            reactions += synthesize(species, ksynth)
        if kdeg is not None:
            reactions += degrade(species, kdeg)
    return reactions
