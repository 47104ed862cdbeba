"""Two-stage model of constitutive gene expression.

Transcription produces mRNA at a constant rate, each mRNA is translated into
protein, and both molecules are degraded (or diluted) at first order rates.
"""

# The chemical network is as follows:
#
#         Reaction             Rate
#   --------------------------------
#            0 -> mRNA           kr
#         mRNA -> 0              gr
#         mRNA -> mRNA + protein kp
#      protein -> 0              gp
#
# The resultant system of differential equations is:
#
# mRNA'    = kr - gr * mRNA
# protein' = kp * mRNA - gp * protein
#
# with steady state mRNA = kr / gr = 100 and
# protein = kp * kr / (gr * gp) = 100000.

from crnsim import ReactionNetwork, Reaction, Parameter

network = ReactionNetwork([
    Reaction(None, 'mRNA', Parameter('kr', 10.0), name='transcription'),
    Reaction('mRNA', None, Parameter('gr', 0.1), name='mRNA_decay'),
    Reaction('mRNA', ['mRNA', 'protein'], Parameter('kp', 1.0),
             name='translation'),
    Reaction('protein', None, Parameter('gp', 0.001), name='protein_decay'),
], name='gene_expression')


if __name__ == '__main__':
    print(__doc__, "\n", network, "\n")
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species.name, ode))
