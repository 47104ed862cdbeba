from crnsim.core import *

__all__ = ['Species', 'Parameter', 'Reaction', 'ReactionNetwork',
           'MassAction', 'Custom', 'ModelError', 'ComponentSet']

__version__ = '0.1.0'
