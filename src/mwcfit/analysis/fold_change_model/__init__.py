"""
Bayesian model of fold-change measurements for a simple repression motif with
an allosteric repressor.

The core model is:

fold_change_obs ~ Normal(fold_change(R, Nns, ep_r, c, ep_a, ep_i, ep_ai, n), sigma)

R (repressor copy number), Nns (nonspecific sites), ep_r (operator binding
energy), ep_ai (inactive/active energy difference) and n (effector binding
sites) are fixed by the experiment. ep_a and ep_i, the log dissociation
constants of the effector for the active and inactive repressor, are inferred
along with the homoscedastic noise scale sigma.

+ ep_a and ep_i have Normal(0,10) priors.
+ sigma has a Beta(0.5,0.5) prior, so it lives on (0,1).
+ Observations are independent given the parameters.
"""

from .data_class import (
    FoldChangeData,
    ModelPriors,
    get_hyperparameters,
    get_guesses,
    get_priors
)

from .model import (
    jax_model,
    log_density_terms,
    log_posterior
)

from .model_class import ModelClass
