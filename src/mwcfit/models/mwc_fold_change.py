"""
Thermodynamic model for the fold-change in gene expression of a simple
repression motif regulated by an allosteric (MWC) repressor.

The repressor exists in an active state (binds the operator) and an inactive
state. An effector molecule at concentration c binds each of the n_sites
ligand sites with dissociation constants K_A = exp(ep_a) (active) and
K_I = exp(ep_i) (inactive). ep_ai is the free energy difference between the
inactive and active states in the absence of ligand. Energies are in kBT.

    pact = (1 + c e^-ep_a)^n / [(1 + c e^-ep_a)^n + e^-ep_ai (1 + c e^-ep_i)^n]
    fold_change = 1 / (1 + pact (R/Nns) e^-ep_r)

All functions use jax.numpy so they broadcast over arrays, can be
differentiated by the sampler, and can be called inside jit.
"""

from jax import numpy as jnp


def activation_probability(c, ep_a, ep_i, ep_ai, n_sites):
    """
    Probability that the repressor is in the active state.

    Parameters
    ----------
    c : float or array
        effector concentration (>= 0).
    ep_a : float or array
        log dissociation constant of the effector for the active state.
    ep_i : float or array
        log dissociation constant of the effector for the inactive state.
    ep_ai : float or array
        energy difference between the inactive and active states.
    n_sites : int
        number of effector binding sites on the repressor.

    Returns
    -------
    jax.numpy.ndarray
        pact in (0,1). Extreme energies can overflow to nan/inf; no clamping
        is done here.
    """

    numerator = (1 + c*jnp.exp(-ep_a))**n_sites
    denominator = numerator + jnp.exp(-ep_ai)*(1 + c*jnp.exp(-ep_i))**n_sites

    return numerator/denominator


def repression(pact, R, Nns, ep_r):
    """
    Repression level, 1 + pact*(R/Nns)*exp(-ep_r).

    Parameters
    ----------
    pact : float or array
        probability the repressor is active.
    R : float
        repressor copy number per cell.
    Nns : float
        number of nonspecific binding sites.
    ep_r : float
        repressor-operator binding energy.

    Returns
    -------
    jax.numpy.ndarray
        repression (>= 1 for pact in [0,1]).
    """

    return 1 + pact*(R/Nns)*jnp.exp(-ep_r)


def fold_change(R, Nns, ep_r, c, ep_a, ep_i, ep_ai, n_sites):
    """
    Expected fold-change in gene expression at effector concentration c.

    Parameters
    ----------
    R : float
        repressor copy number per cell.
    Nns : float
        number of nonspecific binding sites.
    ep_r : float
        repressor-operator binding energy.
    c : float or array
        effector concentration(s).
    ep_a, ep_i : float or array
        log dissociation constants for the active and inactive states.
    ep_ai : float
        energy difference between inactive and active states.
    n_sites : int
        number of effector binding sites.

    Returns
    -------
    jax.numpy.ndarray
        fold-change in (0,1], broadcast over the inputs.
    """

    pact = activation_probability(c, ep_a, ep_i, ep_ai, n_sites)
    rep = repression(pact, R, Nns, ep_r)

    return 1/rep
