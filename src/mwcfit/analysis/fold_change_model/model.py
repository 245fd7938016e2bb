# Import for typing
from .data_class import (
    FoldChangeData,
    ModelPriors,
)

from mwcfit.models.mwc_fold_change import fold_change

import jax.numpy as jnp
import numpyro as pyro
import numpyro.distributions as dist
from typing import Dict, Tuple

# Stand-in for sigma outside (0,1) so the densities stay finite before the
# result is replaced by -inf.
_SAFE_SIGMA = 0.5


def _prior_distributions(priors: ModelPriors):
    """Prior distributions for ep_a, ep_i and sigma, keyed by site name."""

    return {"ep_a": dist.Normal(priors.ep_a_loc, priors.ep_a_scale),
            "ep_i": dist.Normal(priors.ep_i_loc, priors.ep_i_scale),
            "sigma": dist.Beta(priors.sigma_alpha, priors.sigma_beta)}


def _predict(data: FoldChangeData, ep_a, ep_i):
    """
    Predicted fold-change at every observation.

    Returns
    -------
    fc_pred : jnp.ndarray
        raw prediction (may hold nan/inf after overflow).
    fc_mean : jnp.ndarray
        fc_pred with non-finite entries replaced by 0 so the likelihood
        stays evaluable.
    degenerate : jnp.ndarray
        scalar log factor, 0 if every prediction is finite and -inf otherwise.
    """

    fc_pred = fold_change(data.R,
                          data.Nns,
                          data.ep_r,
                          data.conc,
                          ep_a,
                          ep_i,
                          data.ep_ai,
                          data.n_sites)

    is_finite = jnp.isfinite(fc_pred)
    fc_mean = jnp.where(is_finite, fc_pred, 0.0)
    degenerate = jnp.where(jnp.all(is_finite), 0.0, -jnp.inf)

    return fc_pred, fc_mean, degenerate


def jax_model(data: FoldChangeData,
              priors: ModelPriors):
    """
    Bayesian model for fold-change measurements under the MWC repressor model.

    Parameters
    ----------
    data : FoldChangeData
        Pytree holding the observed concentrations, fold-changes, and fixed
        experimental constants. If ``data.fold_change`` is None the observation
        site is sampled instead of conditioned (posterior predictive).
    priors : ModelPriors
        Pytree holding the prior hyperparameters.

    Notes
    -----
    Sample sites: ``ep_a``, ``ep_i``, ``sigma`` (latent) and
    ``fold_change_obs`` (observed). Deterministic site: ``fold_change_pred``.
    If any predicted fold-change is not finite (overflow in the exponentials)
    a ``fold_change_degenerate`` factor of -inf is added so the sampler rejects
    the proposal.
    """

    # -------------------------------------------------------------------------
    # Priors

    prior_dists = _prior_distributions(priors)

    ep_a = pyro.sample("ep_a", prior_dists["ep_a"])
    ep_i = pyro.sample("ep_i", prior_dists["ep_i"])
    sigma = pyro.sample("sigma", prior_dists["sigma"])

    # -------------------------------------------------------------------------
    # Thermodynamic prediction

    fc_pred, fc_mean, degenerate = _predict(data, ep_a, ep_i)
    pyro.deterministic("fold_change_pred", fc_pred)
    pyro.factor("fold_change_degenerate", degenerate)

    # -------------------------------------------------------------------------
    # Likelihood

    with pyro.plate("obs_plate", data.num_obs):
        pyro.sample("fold_change_obs",
                    dist.Normal(fc_mean, sigma),
                    obs=data.fold_change)


def log_density_terms(params: Dict[str, float],
                      data: FoldChangeData,
                      priors: ModelPriors) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Log-prior and log-likelihood of `jax_model` at fixed parameter values.

    The terms are built directly from the model's distributions rather than
    by tracing `jax_model`, so no numpyro effect handlers are involved and the
    function can be called from several threads at once.

    Parameters
    ----------
    params : dict
        constrained-space values for ``ep_a``, ``ep_i`` and ``sigma``.
    data : FoldChangeData
        data pytree. ``data.fold_change`` must not be None.
    priors : ModelPriors
        prior hyperparameters.

    Returns
    -------
    log_prior : jnp.ndarray
        sum of the latent-site log densities.
    log_likelihood : jnp.ndarray
        sum of the observation log densities plus the degeneracy factor.
    """

    if data.fold_change is None:
        raise ValueError("data.fold_change must be set to evaluate a density.")

    prior_dists = _prior_distributions(priors)

    log_prior = jnp.array(0.0)
    for name, prior in prior_dists.items():
        log_prior = log_prior + prior.log_prob(params[name])

    _, fc_mean, degenerate = _predict(data, params["ep_a"], params["ep_i"])

    obs_log_prob = dist.Normal(fc_mean, params["sigma"]).log_prob(data.fold_change)
    log_likelihood = jnp.sum(obs_log_prob) + degenerate

    return log_prior, log_likelihood


def log_posterior(params: Dict[str, float],
                  data: FoldChangeData,
                  priors: ModelPriors) -> jnp.ndarray:
    """
    Unnormalized log posterior density of (ep_a, ep_i, sigma).

    This is a pure jax function of its inputs (no global state, no numpyro
    handlers), so it is safe to call concurrently and under jit. Proposals
    the model cannot evaluate return -inf instead of nan or raising, so a
    sampler treats them as rejections:

    + sigma <= 0 or sigma >= 1 (outside the Beta prior support)
    + any non-finite predicted fold-change or density term

    Parameters
    ----------
    params : dict
        values for ``ep_a``, ``ep_i`` and ``sigma`` in constrained space.
    data : FoldChangeData
        data pytree with observed fold-changes.
    priors : ModelPriors
        prior hyperparameters.

    Returns
    -------
    jnp.ndarray
        scalar log density (float64 when x64 is enabled).
    """

    sigma = jnp.asarray(params["sigma"], dtype=float)
    in_support = jnp.logical_and(sigma > 0, sigma < 1)

    safe_params = {"ep_a": jnp.asarray(params["ep_a"], dtype=float),
                   "ep_i": jnp.asarray(params["ep_i"], dtype=float),
                   "sigma": jnp.where(in_support, sigma, _SAFE_SIGMA)}

    log_prior, log_likelihood = log_density_terms(safe_params, data, priors)
    total = log_prior + log_likelihood

    is_valid = jnp.logical_and(in_support, jnp.isfinite(total))

    return jnp.where(is_valid, total, -jnp.inf)
