"""Negative autoregulation: a protein represses transcription of its own
gene, modelled with a Hill function.

The transcription rate is vmax / (1 + (P / K)**n) (see
:func:`crnsim.kinetics.hill_repression`), which is a custom rate law; all
other reactions follow mass action.
"""

from crnsim import ReactionNetwork, Reaction, Parameter, Custom
from crnsim.kinetics import hill_repression

network = ReactionNetwork([
    Reaction(None, 'mRNA',
             Custom(hill_repression, ['P'], ['vmax', 'K', 'n']),
             name='transcription'),
    Reaction('mRNA', None, 'gm', name='mRNA_decay'),
    Reaction('mRNA', ['mRNA', 'P'], 'kp', name='translation'),
    Reaction('P', None, 'gp', name='P_decay'),
], species=['mRNA', 'P'], parameters=[
    Parameter('vmax', 10.0),
    Parameter('K', 20.0),
    Parameter('n', 2.0),
    Parameter('gm', 1.0),
    Parameter('kp', 2.0),
    Parameter('gp', 0.1),
], name='autorepression')


if __name__ == '__main__':
    print(__doc__, "\n", network, "\n")
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species.name, ode))
