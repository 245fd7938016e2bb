from mwcfit.__version__ import __version__

from mwcfit.util import (
    InvalidInputError,
    check_number,
    check_array,
    check_columns,
    read_dataframe,
    read_yaml,
)
from mwcfit.models.mwc_fold_change import fold_change

from mwcfit.analysis.fold_change_model.model import (
    jax_model,
    log_posterior
)
from mwcfit.analysis.fold_change_model.data_class import (
    FoldChangeData,
    ModelPriors,
    get_priors,
    get_guesses
)

import jax
from jax import numpy as jnp
import pandas as pd
import numpy as np
import yaml

import os
import warnings

# Declare float datatype
FLOAT_DTYPE = jnp.float64 if jax.config.read("jax_enable_x64") else jnp.float32

# Named quantiles pulled from posterior distributions by default
DEFAULT_QUANTILES = {"lower_95":0.025,
                     "lower_std":0.159,
                     "median":0.5,
                     "upper_std":0.841,
                     "upper_95":0.975}

# Sampled parameters reported by extract_parameters
PARAM_NAMES = ["ep_a","ep_i","sigma"]


def _read_fold_change_df(fold_change_df,
                         conc_column="conc",
                         fold_change_column="fold_change"):
    """
    Read and validate a table of fold-change observations.

    Parameters
    ----------
    fold_change_df : pd.DataFrame or str
        DataFrame or path to a spreadsheet with one row per observation.
    conc_column : str, default="conc"
        column holding effector concentration.
    fold_change_column : str, default="fold_change"
        column holding the measured fold-change.

    Returns
    -------
    pd.DataFrame
        copy of the input with columns renamed to "conc" and "fold_change".

    Raises
    ------
    InvalidInputError
        If a column is missing, the table is empty, or values are not finite.
    """

    df = read_dataframe(fold_change_df)
    check_columns(df,required_columns=[conc_column,fold_change_column])

    df = df.rename(columns={conc_column:"conc",
                            fold_change_column:"fold_change"})

    if len(df) == 0:
        raise InvalidInputError("fold_change_df has no observations.")

    return df.reset_index(drop=True)


def _as_scalar(value):
    """Unwrap 0-d numpy/jax arrays so check_number sees a plain scalar."""

    if hasattr(value,"ndim") and value.ndim == 0:
        return value.item()
    return value


def _check_constants(R, Nns, ep_ai, ep_r, n_sites):
    """
    Validate the fixed experimental constants, returning them cast to their
    working types.
    """

    constants = {}
    constants["R"] = check_number(R,"R",min_allowed=0)
    constants["Nns"] = check_number(Nns,"Nns",min_allowed=0,inclusive_min=False)
    constants["ep_ai"] = check_number(ep_ai,"ep_ai")
    constants["ep_r"] = check_number(ep_r,"ep_r")
    constants["n_sites"] = check_number(n_sites,"n_sites",cast_type=int,min_allowed=1)

    return constants


class ModelClass:
    """
    Manages the data wrangling and configuration for the fold-change model.

    Takes raw fold-change observations plus the fixed experimental constants,
    validates them, and assembles the `data` and `priors` pytrees consumed by
    `jax_model`. All input errors are raised here, before any sampling.

    Parameters
    ----------
    fold_change_df : pd.DataFrame or str
        DataFrame or path to file with columns `conc` and `fold_change`.
    R : float
        repressor copy number (>= 0).
    Nns : float
        number of nonspecific binding sites (> 0).
    ep_ai : float
        energy difference between inactive and active repressor states.
    ep_r : float
        repressor-operator binding energy.
    n_sites : int
        number of effector binding sites (>= 1).
    priors : dict or ModelPriors, optional
        prior hyperparameter overrides. Missing keys use the defaults
        (ep_a, ep_i ~ Normal(0,10); sigma ~ Beta(0.5,0.5)).
    conc_column : str, default="conc"
        name of the concentration column in fold_change_df.
    fold_change_column : str, default="fold_change"
        name of the fold-change column in fold_change_df.

    Attributes
    ----------
    data : FoldChangeData
        A JAX Pytree (flax dataclass) holding observations and constants.
    priors : ModelPriors
        A JAX Pytree holding the prior hyperparameters.
    init_params : dict
        initial parameter values for the sampler.
    jax_model : function
        The numpyro model function (from `model.py`).
    settings : dict
        constants and priors used to build the model.
    """

    def __init__(self,
                 fold_change_df,
                 R,
                 Nns,
                 ep_ai,
                 ep_r,
                 n_sites,
                 priors=None,
                 conc_column="conc",
                 fold_change_column="fold_change"):

        self._df = _read_fold_change_df(fold_change_df,
                                        conc_column=conc_column,
                                        fold_change_column=fold_change_column)

        self._constants = _check_constants(R,Nns,ep_ai,ep_r,n_sites)

        self._initialize_data()
        self._initialize_priors(priors)

        self._init_params = get_guesses()

    @classmethod
    def from_arrays(cls,
                    N,
                    conc,
                    fold_change,
                    R,
                    Nns,
                    ep_ai,
                    ep_r,
                    n_sites,
                    priors=None):
        """
        Build a model from the observation count and two sequences.

        Parameters
        ----------
        N : int
            number of observations. Must match the length of both sequences.
        conc : array-like
            effector concentrations (>= 0).
        fold_change : array-like
            measured fold-changes.
        R, Nns, ep_ai, ep_r, n_sites, priors :
            see class docstring.

        Returns
        -------
        ModelClass
        """

        N = check_number(N,"N",cast_type=int,min_allowed=1)
        conc = check_array(conc,"conc",expected_length=N)
        fold_change = check_array(fold_change,"fold_change",expected_length=N)

        df = pd.DataFrame({"conc":conc,
                           "fold_change":fold_change})

        return cls(df,
                   R=R,
                   Nns=Nns,
                   ep_ai=ep_ai,
                   ep_r=ep_r,
                   n_sites=n_sites,
                   priors=priors)

    def _initialize_data(self):
        """
        Validate the observation columns and build the FoldChangeData pytree.
        """

        conc = check_array(self._df["conc"],"conc",min_allowed=0)
        obs = check_array(self._df["fold_change"],"fold_change",
                          expected_length=len(conc))

        self._data = self._build_data(conc,obs)

    def _build_data(self,conc,obs):

        if obs is not None:
            obs = jnp.asarray(obs,dtype=FLOAT_DTYPE)

        return FoldChangeData(conc=jnp.asarray(conc,dtype=FLOAT_DTYPE),
                              fold_change=obs,
                              R=self._constants["R"],
                              Nns=self._constants["Nns"],
                              ep_ai=self._constants["ep_ai"],
                              ep_r=self._constants["ep_r"],
                              n_sites=self._constants["n_sites"],
                              num_obs=len(conc))

    def _initialize_priors(self,priors):
        """
        Build the ModelPriors pytree from defaults plus overrides.
        """

        if priors is None:
            priors = {}

        if isinstance(priors,ModelPriors):
            self._priors = priors
        elif isinstance(priors,dict):
            try:
                self._priors = get_priors(**priors)
            except (ValueError, TypeError) as e:
                raise InvalidInputError(str(e)) from e
        else:
            raise InvalidInputError(
                "priors should be a dictionary or ModelPriors instance."
            )

        # Same checks whichever way the priors arrived
        for k in ["ep_a_loc","ep_i_loc"]:
            check_number(_as_scalar(getattr(self._priors,k)),k)
        for k in ["ep_a_scale","ep_i_scale","sigma_alpha","sigma_beta"]:
            check_number(_as_scalar(getattr(self._priors,k)),k,
                         min_allowed=0,inclusive_min=False)

    def get_prediction_data(self,conc):
        """
        Build a FoldChangeData object with new concentrations and no
        observations, for posterior predictive calculations.

        Parameters
        ----------
        conc : array-like
            effector concentrations to predict at.

        Returns
        -------
        FoldChangeData
        """

        conc = check_array(conc,"conc",min_allowed=0)
        return self._build_data(conc,None)

    def log_posterior(self,params):
        """
        Log posterior density at `params` (dict with ep_a, ep_i, sigma) given
        this model's data and priors. See `model.log_posterior`.
        """
        return log_posterior(params,self._data,self._priors)

    def extract_parameters(self,
                           posteriors,
                           q_to_get=None):
        """
        Summarize the posterior distributions of ep_a, ep_i, and sigma.

        Parameters
        ----------
        posteriors : dict or str
            dictionary of posterior samples keying parameters to numpy arrays
            or a path to a .npz file holding them.
        q_to_get : dict, optional
            Dictionary mapping output column names to quantiles (between 0
            and 1). Defaults to DEFAULT_QUANTILES.

        Returns
        -------
        pd.DataFrame
            one row per parameter with columns parameter, mean, std and one
            column per requested quantile.
        """

        param_posteriors = self._load_posteriors(posteriors)
        q_to_get = self._check_q_to_get(q_to_get)

        rows = []
        for p in PARAM_NAMES:
            if p not in param_posteriors:
                raise ValueError(f"'{p}' not found in posterior samples.")

            samples = np.asarray(param_posteriors[p]).ravel()

            row = {"parameter":p,
                   "mean":np.mean(samples),
                   "std":np.std(samples)}
            for q_name, q_val in q_to_get.items():
                row[q_name] = np.quantile(samples,q_val)

            rows.append(row)

        return pd.DataFrame(rows)

    def extract_fold_change_predictions(self,
                                        posteriors,
                                        q_to_get=None):
        """
        Attach quantiles of the predicted fold-change to the observations.

        Parameters
        ----------
        posteriors : dict or str
            posterior samples (or path to .npz) holding 'fold_change_pred'.
        q_to_get : dict, optional
            Dictionary mapping output column names to quantiles.

        Returns
        -------
        pd.DataFrame
            copy of the observation table with one new column per quantile.
        """

        param_posteriors = self._load_posteriors(posteriors)
        q_to_get = self._check_q_to_get(q_to_get)

        if "fold_change_pred" not in param_posteriors:
            raise ValueError(
                "'fold_change_pred' not found in posterior samples. Make sure "
                "the model was run in a way that records predictions."
            )

        pred = np.asarray(param_posteriors["fold_change_pred"])
        pred = pred.reshape(-1,pred.shape[-1])
        if pred.shape[-1] != len(self._df):
            raise ValueError(
                f"'fold_change_pred' has {pred.shape[-1]} points but the model "
                f"has {len(self._df)} observations."
            )

        out_df = self._df.copy()
        for q_name, q_val in q_to_get.items():
            out_df[q_name] = np.quantile(pred,q_val,axis=0)

        return out_df

    def extract_fold_change_curves(self,
                                   posteriors,
                                   conc=None,
                                   q_to_get=None):
        """
        Calculate the fold-change curve for every posterior draw and return
        quantiles at each concentration.

        Parameters
        ----------
        posteriors : dict or str
            posterior samples (or path to .npz) holding ep_a and ep_i.
        conc : array-like, optional
            concentrations to evaluate. If None, use 100 points spaced
            logarithmically across the observed non-zero range, plus zero.
        q_to_get : dict, optional
            Dictionary mapping output column names to quantiles.

        Returns
        -------
        pd.DataFrame
            columns conc and one column per quantile.
        """

        param_posteriors = self._load_posteriors(posteriors)
        q_to_get = self._check_q_to_get(q_to_get)

        if conc is None:
            obs_conc = np.asarray(self._data.conc)
            nonzero = obs_conc[obs_conc > 0]
            if len(nonzero) == 0:
                conc = np.array([0.0])
            else:
                conc = np.concatenate([[0.0],
                                       np.logspace(np.log10(np.min(nonzero)),
                                                   np.log10(np.max(nonzero)),
                                                   100)])
        conc = check_array(conc,"conc",min_allowed=0)

        for p in ["ep_a","ep_i"]:
            if p not in param_posteriors:
                raise ValueError(f"'{p}' not found in posterior samples.")

        ep_a = np.asarray(param_posteriors["ep_a"]).ravel()[:,None]
        ep_i = np.asarray(param_posteriors["ep_i"]).ravel()[:,None]

        c = self._constants
        curves = np.asarray(fold_change(c["R"],
                                        c["Nns"],
                                        c["ep_r"],
                                        conc[None,:],
                                        ep_a,
                                        ep_i,
                                        c["ep_ai"],
                                        c["n_sites"]))

        out_df = pd.DataFrame({"conc":conc})
        for q_name, q_val in q_to_get.items():
            out_df[q_name] = np.quantile(curves,q_val,axis=0)

        return out_df

    def _load_posteriors(self,posteriors):

        if isinstance(posteriors,(dict,np.lib.npyio.NpzFile)):
            return posteriors

        if not os.path.exists(posteriors):
            raise FileNotFoundError(f"Posterior file not found: {posteriors}")

        with np.load(posteriors) as loaded:
            return {k: loaded[k] for k in loaded.files}

    def _check_q_to_get(self,q_to_get):

        if q_to_get is None:
            q_to_get = DEFAULT_QUANTILES

        if not isinstance(q_to_get,dict):
            raise ValueError(
                "q_to_get should be a dictionary keying column names to quantiles"
            )

        return q_to_get

    @property
    def df(self):
        """Copy of the observation table."""
        return self._df.copy()

    @property
    def init_params(self):
        """A dictionary of initial parameter values for the sampler."""
        return dict(self._init_params)

    @property
    def jax_model(self):
        """The numpyro model function."""
        return jax_model

    @property
    def data(self):
        """The FoldChangeData Pytree holding all input data."""
        return self._data

    @property
    def priors(self):
        """The ModelPriors Pytree holding all prior hyperparameters."""
        return self._priors

    @property
    def constants(self):
        """Validated fixed experimental constants."""
        return dict(self._constants)

    @property
    def settings(self):
        """Constants and prior hyperparameters used to build the model."""

        priors = {k: float(getattr(self._priors,k))
                  for k in ["ep_a_loc","ep_a_scale",
                            "ep_i_loc","ep_i_scale",
                            "sigma_alpha","sigma_beta"]}

        return {"constants":self.constants,
                "priors":priors}

    @staticmethod
    def load_config(config_file):
        """
        Load model configuration from a YAML file.

        Parameters
        ----------
        config_file : str
            Path to the YAML configuration file.

        Returns
        -------
        fold_change_df : str
            Path to the fold-change data file.
        constants : dict
            fixed experimental constants (R, Nns, ep_ai, ep_r, n_sites).
        priors : dict
            prior overrides (may be empty).
        sampler : dict
            sampler settings (may be empty).
        """

        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        config = read_yaml(config_file)

        required_fields = ["fold_change_df","constants"]
        for field in required_fields:
            if field not in config:
                raise InvalidInputError(f"Missing required field: {field}")

        required_constants = ["R","Nns","ep_ai","ep_r","n_sites"]
        missing = [k for k in required_constants if k not in config["constants"]]
        if missing:
            raise InvalidInputError(f"Missing required constants: {missing}")

        if "mwcfit_version" in config and config["mwcfit_version"] != __version__:
            warnings.warn(
                f"Configuration file version {config['mwcfit_version']} does "
                f"not match current mwcfit version {__version__}"
            )

        priors = config.get("priors") or {}
        sampler = config.get("sampler") or {}

        return config["fold_change_df"], config["constants"], priors, sampler

    def write_config(self,
                     fold_change_df_path,
                     out_root,
                     sampler=None):
        """
        Write model configuration to a YAML file.

        Parameters
        ----------
        fold_change_df_path : str
            Path to the fold-change data file.
        out_root : str
            Root filename for the configuration file ({out_root}_config.yaml).
        sampler : dict, optional
            sampler settings to record alongside the model.

        Returns
        -------
        str
            path to the written file
        """

        config = {"mwcfit_version":__version__,
                  "fold_change_df":fold_change_df_path}
        config.update(self.settings)
        if sampler is not None:
            config["sampler"] = dict(sampler)

        config_file = f"{out_root}_config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f, default_flow_style=False)

        return config_file
