"""
mwcfit package initialization.

Bayesian inference of effector binding energies from fold-change measurements
using the MWC model of an allosteric repressor.
"""

# Fold-change likelihoods need double precision; set before any arrays exist.
import numpyro
numpyro.enable_x64()

from .__version__ import __version__

from . import util
from . import models
from . import analysis
from . import simulate
from . import plot
