"""Degradation of an intermediate catalysed by a low-copy species.

A substrate S is produced and degraded at constant rates, while the
intermediate I is produced constitutively and degraded only on encounter
with S:

    0 -> S      b
    S -> 0      d
    0 -> I      kI
    S + I -> S  ka

The deterministic steady state is S = b / d and I = kI * d / (ka * b) = 20.
With b = 1 and d = 2, S is rarely above one molecule and the fluctuations of
S push the mean of I well above the deterministic value (by Jensen's
inequality, since I responds to 1 / S). Scaling b and d up by the same
factor keeps the deterministic solution unchanged while the stochastic mean
of I converges to it.
"""

from crnsim import ReactionNetwork, Reaction, Parameter

network = ReactionNetwork([
    Reaction(None, 'S', Parameter('b', 1.0), name='S_synthesis'),
    Reaction('S', None, Parameter('d', 2.0), name='S_decay'),
    Reaction(None, 'I', Parameter('kI', 10.0), name='I_synthesis'),
    Reaction(['S', 'I'], 'S', Parameter('ka', 1.0), name='I_degradation'),
], name='catalytic_degradation')


if __name__ == '__main__':
    print(__doc__, "\n", network, "\n")
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species.name, ode))
