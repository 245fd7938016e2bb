import jax.numpy as jnp
from flax.struct import (
    dataclass,
    field
)
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class FoldChangeData:
    """
    JAX Pytree holding the observations and fixed experimental constants for
    one fit.

    Attributes
    ----------
    conc : jnp.ndarray
        effector concentration for each observation, shape (num_obs,).
    fold_change : jnp.ndarray or None
        measured fold-change for each observation, shape (num_obs,). None
        when the data object is only used for prediction.
    R : float
        repressor copy number.
    Nns : float
        number of nonspecific binding sites.
    ep_ai : float
        energy difference between inactive and active repressor states.
    ep_r : float
        repressor-operator binding energy.
    n_sites : int
        number of effector binding sites (static).
    num_obs : int
        number of observations (static).
    """

    conc: jnp.ndarray
    fold_change: Optional[jnp.ndarray]

    R: float
    Nns: float
    ep_ai: float
    ep_r: float

    n_sites: int = field(pytree_node=False)
    num_obs: int = field(pytree_node=False)


@dataclass(frozen=True)
class ModelPriors:
    """
    JAX Pytree holding hyperparameters for the fold-change model priors.

    ep_a ~ Normal(ep_a_loc, ep_a_scale)
    ep_i ~ Normal(ep_i_loc, ep_i_scale)
    sigma ~ Beta(sigma_alpha, sigma_beta)
    """

    ep_a_loc: float
    ep_a_scale: float
    ep_i_loc: float
    ep_i_scale: float
    sigma_alpha: float
    sigma_beta: float


def get_hyperparameters() -> Dict[str, Any]:
    """
    Gets default values for the model hyperparameters.

    Returns
    -------
    dict[str, Any]
        A dictionary mapping hyperparameter names to their default values.
    """

    parameters = {}

    parameters["ep_a_loc"] = 0.0
    parameters["ep_a_scale"] = 10.0

    parameters["ep_i_loc"] = 0.0
    parameters["ep_i_scale"] = 10.0

    parameters["sigma_alpha"] = 0.5
    parameters["sigma_beta"] = 0.5

    return parameters


def get_guesses() -> Dict[str, Any]:
    """
    Initial values for the sampled parameters. Suitable for
    ``numpyro.infer.init_to_value``.
    """

    guesses = {}
    guesses["ep_a"] = 0.0
    guesses["ep_i"] = 0.0
    guesses["sigma"] = 0.1

    return guesses


def get_priors(**overrides) -> ModelPriors:
    """
    Create a populated ModelPriors object.

    Parameters
    ----------
    **overrides
        hyperparameter values that replace the defaults from
        `get_hyperparameters`.

    Returns
    -------
    ModelPriors
        A populated Pytree (Flax dataclass) of hyperparameters.

    Raises
    ------
    ValueError
        If an override does not name a known hyperparameter.
    """

    parameters = get_hyperparameters()
    for k in overrides:
        if k not in parameters:
            raise ValueError(
                f"'{k}' is not a recognized prior. Should be one of: "
                f"{list(parameters.keys())}"
            )
        parameters[k] = float(overrides[k])

    return ModelPriors(**parameters)
