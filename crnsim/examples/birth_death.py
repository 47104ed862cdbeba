"""Birth-death process: a single species produced at a constant rate and
degraded at a first order rate.

The stationary distribution of the molecule count is Poisson with mean
kb / kd = 100.
"""

from crnsim import ReactionNetwork, Reaction, Parameter

network = ReactionNetwork([
    Reaction(None, 'X', Parameter('kb', 10.0), name='birth'),
    Reaction('X', None, Parameter('kd', 0.1), name='death'),
], name='birth_death')


if __name__ == '__main__':
    print(__doc__, "\n", network, "\n")
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species.name, ode))
