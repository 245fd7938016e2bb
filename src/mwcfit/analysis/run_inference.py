
import jax
from jax import random
from jax import numpy as jnp

from numpyro.handlers import seed, trace

from numpyro.infer import (
    MCMC,
    NUTS,
    HMC,
    SA,
    SVI,
    Trace_ELBO,
    Predictive,
    init_to_value
)
from numpyro.infer.autoguide import AutoDelta
from numpyro.optim import ClippedAdam
from numpyro.diagnostics import summary

import numpy as np
import pandas as pd
import dill
from tqdm.auto import tqdm

import os
import warnings

AVAILABLE_KERNELS = {"nuts":NUTS,
                     "hmc":HMC,
                     "sa":SA}


class RunInference:
    """
    Manages MCMC sampling of the posterior for a model.

    This class wraps numpyro's MCMC machinery: kernel and sampler setup,
    running chains, writing posterior draws and checkpoints, sampler
    diagnostics, MAP estimates for initialization, and posterior predictive
    calculations. It interfaces with a 'model' object that exposes the
    numpyro model, its data, and its priors.
    """

    def __init__(self,model,seed):
        """
        Initialize the RunInference class.

        Parameters
        ----------
        model : object
            A model object that must expose the following attributes:
            - `data` (flax.struct.dataclass): Data object.
            - `priors` (flax.struct.dataclass): Data object holding model priors
            - `jax_model` (callable): The Numpyro model.
            - `init_params` (dict): initial values for the latent sites.
        seed : int
            Random seed for JAX PRNG key generation.
        """

        required_attr = ["data",
                         "priors",
                         "jax_model",
                         "init_params"]
        for attr in required_attr:
            if not hasattr(model,attr):
                raise ValueError(f"`model` must have attribute {attr}")

        self.model = model
        self._seed = seed
        self._main_key = random.PRNGKey(self._seed)

    def setup_mcmc(self,
                   kernel="nuts",
                   num_warmup=1000,
                   num_samples=2000,
                   num_chains=1,
                   chain_method="sequential",
                   target_accept_prob=0.8,
                   init_params=None,
                   progress_bar=True):
        """
        Set up an MCMC sampler.

        Parameters
        ----------
        kernel : str, optional
            sampling kernel.
            - 'nuts' (default): No-U-Turn sampler.
            - 'hmc': Hamiltonian Monte Carlo with a fixed trajectory length.
            - 'sa': gradient-free sample adaptive MCMC.
        num_warmup : int, optional
            number of warm-up (adaptation) steps per chain.
        num_samples : int, optional
            number of draws kept per chain.
        num_chains : int, optional
            number of independent chains.
        chain_method : str, optional
            'sequential', 'parallel', or 'vectorized'. 'parallel' needs as many
            devices as chains (see `numpyro.set_host_device_count`).
        target_accept_prob : float, optional
            target acceptance probability for step size adaptation (nuts and
            hmc only).
        init_params : dict, optional
            constrained-space starting values for the latent sites. If None,
            use `model.init_params`.
        progress_bar : bool, optional
            show numpyro's progress bar.

        Returns
        -------
        numpyro.infer.MCMC
            An MCMC object ready to run.
        """

        if kernel not in AVAILABLE_KERNELS:
            raise ValueError(
                f"kernel '{kernel}' not recognized. Should be one of "
                f"{list(AVAILABLE_KERNELS.keys())}"
            )

        if init_params is None:
            init_params = self.model.init_params

        init_strategy = init_to_value(values=init_params)

        if kernel == "sa":
            sampler_kernel = SA(self.model.jax_model,
                                init_strategy=init_strategy)
        else:
            sampler_kernel = AVAILABLE_KERNELS[kernel](self.model.jax_model,
                                                       target_accept_prob=target_accept_prob,
                                                       init_strategy=init_strategy)

        mcmc = MCMC(sampler_kernel,
                    num_warmup=num_warmup,
                    num_samples=num_samples,
                    num_chains=num_chains,
                    chain_method=chain_method,
                    progress_bar=progress_bar)

        return mcmc

    def run_mcmc(self,
                 mcmc,
                 out_root="mwcfit",
                 checkpoint=None):
        """
        Run the chains and collect posterior draws.

        Parameters
        ----------
        mcmc : numpyro.infer.MCMC
            The MCMC object from `setup_mcmc`.
        out_root : str or None, optional
            Root name for output files ({out_root}_posterior.npz and
            {out_root}_checkpoint.pkl). If None, nothing is written.
        checkpoint : str, optional
            path to a checkpoint written by a previous run. If given, sampling
            continues from the saved chain state and skips warm-up.

        Returns
        -------
        dict
            posterior draws keyed by site name. Chains are concatenated along
            the first axis.

        Raises
        ------
        RuntimeError
            If any draw is nan.
        """

        if checkpoint is not None:
            if not os.path.isfile(checkpoint):
                raise ValueError(f"checkpoint '{checkpoint}' is not valid")
            mcmc.post_warmup_state = self._restore_checkpoint(checkpoint)
            run_key = mcmc.post_warmup_state.rng_key
        else:
            run_key = self.get_key()

        print(f"Sampling {mcmc.num_chains} chain(s): "
              f"{mcmc.num_warmup} warmup, {mcmc.num_samples} samples",
              flush=True)

        # Only hamiltonian kernels record divergences
        extra_fields = ()
        if isinstance(mcmc.sampler,HMC):
            extra_fields = ("diverging",)

        mcmc.run(run_key,
                 data=self.model.data,
                 priors=self.model.priors,
                 extra_fields=extra_fields)

        samples = {k: np.asarray(jax.device_get(v))
                   for k, v in mcmc.get_samples().items()}

        for k in samples:
            if np.any(np.isnan(samples[k])):
                raise RuntimeError(
                    f"model exploded (nan draws observed for '{k}')."
                )

        num_divergent = self.get_num_divergent(mcmc)
        if num_divergent > 0:
            warnings.warn(
                f"{num_divergent} divergent transitions after warmup."
            )

        if out_root is not None:
            self._write_posteriors(samples,out_root)
            self._write_checkpoint(mcmc,out_root)

        return samples

    def get_num_divergent(self,mcmc):
        """
        Number of divergent transitions recorded after warm-up. Returns 0 for
        kernels that do not record divergences.
        """

        extra = mcmc.get_extra_fields()
        if "diverging" not in extra:
            return 0

        return int(np.sum(np.asarray(extra["diverging"])))

    def get_diagnostics(self,mcmc,prob=0.9):
        """
        Posterior summary and convergence diagnostics for the latent sites.

        Parameters
        ----------
        mcmc : numpyro.infer.MCMC
            an MCMC object that has been run.
        prob : float, optional
            width of the reported credible interval.

        Returns
        -------
        pandas.DataFrame
            one row per latent parameter with columns parameter, mean, std,
            median, the interval bounds, n_eff, and r_hat.
        """

        latent_sites = self._get_site_names(target_sites="sample",
                                            observed=False)

        samples = mcmc.get_samples(group_by_chain=True)
        samples = {k: samples[k] for k in latent_sites if k in samples}

        stats = summary(samples,prob=prob,group_by_chain=True)

        rows = []
        for name, site_stats in stats.items():
            row = {"parameter":name}
            for stat_name, value in site_stats.items():
                row[stat_name] = float(np.asarray(value))
            rows.append(row)

        return pd.DataFrame(rows)

    def find_map(self,
                 num_steps=5000,
                 adam_step_size=1e-2,
                 adam_clip_norm=1.0,
                 init_params=None):
        """
        Find the maximum a posteriori estimate of the latent sites with SVI
        and a point-mass (AutoDelta) guide. The result can seed `setup_mcmc`.

        Parameters
        ----------
        num_steps : int, optional
            number of optimization steps.
        adam_step_size : float, optional
            Step size for the ClippedAdam optimizer.
        adam_clip_norm : float, optional
            Gradient clipping norm for the ClippedAdam optimizer.
        init_params : dict, optional
            starting values. If None, use `model.init_params`.

        Returns
        -------
        dict
            constrained-space MAP estimates keyed by site name.

        Raises
        ------
        RuntimeError
            If the optimization produces nan parameters.
        """

        if init_params is None:
            init_params = self.model.init_params

        guide = AutoDelta(self.model.jax_model,
                          init_loc_fn=init_to_value(values=init_params))

        optimizer = ClippedAdam(step_size=adam_step_size,
                                clip_norm=adam_clip_norm)

        svi = SVI(self.model.jax_model,
                  guide,
                  optimizer,
                  loss=Trace_ELBO())

        svi_result = svi.run(self.get_key(),
                             num_steps,
                             data=self.model.data,
                             priors=self.model.priors,
                             progress_bar=False)

        map_est = guide.median(svi_result.params)
        map_est = {k: float(np.asarray(v)) for k, v in map_est.items()}

        for k in map_est:
            if np.isnan(map_est[k]):
                raise RuntimeError(
                    f"model exploded (nan MAP estimate for '{k}')."
                )

        print(f"MAP estimate after {num_steps} steps "
              f"(final loss {float(svi_result.losses[-1]):10.5e}): {map_est}",
              flush=True)

        return map_est

    def predict(self,
                posterior_samples,
                predict_sites=None,
                data_for_predict=None,
                batch_size=1000):
        """
        Use the model to predict values of deterministic sites.

        Parameters
        ----------
        posterior_samples : dict or str
            A dictionary of posterior samples or a path to a .npz file
            containing them (typically from `run_mcmc`). Only latent sites
            are used; stored predictions are recalculated.
        predict_sites : list of str or str, optional
            List of model sites to predict. If None, defaults to all
            'deterministic' sites found in the model trace.
        data_for_predict : object, optional
            A dataclass matching the structure of `self.model.data` but
            potentially containing different concentrations. If None, uses
            the original data.
        batch_size : int, optional
            number of posterior draws pushed through the model at once.

        Returns
        -------
        dict
            A dictionary mapping site names to predicted value arrays.
        """

        if predict_sites is None:
            predict_sites = self._get_site_names()

        if isinstance(predict_sites,str):
            predict_sites = [predict_sites]

        if isinstance(posterior_samples,str):
            with np.load(posterior_samples) as loaded:
                posterior_samples = {k: loaded[k] for k in loaded.files}

        if not isinstance(posterior_samples,dict):
            posterior_samples = dict(posterior_samples)

        if data_for_predict is None:
            data_for_predict = self.model.data

        latent_sites = self._get_site_names(target_sites="sample",
                                            observed=False)
        latents = {k: jnp.asarray(posterior_samples[k])
                   for k in latent_sites if k in posterior_samples}

        if len(latents) == 0:
            raise ValueError("posterior_samples has no latent model sites.")

        num_draws = len(next(iter(latents.values())))

        collector = {k: [] for k in predict_sites}
        for start_idx in tqdm(range(0, num_draws, batch_size), desc="predicting"):

            end_idx = min(start_idx + batch_size, num_draws)
            batch_latents = {k: v[start_idx:end_idx] for k, v in latents.items()}

            predictor = Predictive(self.model.jax_model,
                                   posterior_samples=batch_latents,
                                   return_sites=predict_sites)

            batch_pred = predictor(self.get_key(),
                                   data=data_for_predict,
                                   priors=self.model.priors)

            for k in predict_sites:
                collector[k].append(np.asarray(jax.device_get(batch_pred[k])))

        return {k: np.concatenate(v,axis=0) for k, v in collector.items()}

    def get_key(self):
        """
        Get a new JAX PRNG key, splitting the main key.

        Returns
        -------
        jax.random.PRNGKey
            A new, unique PRNG key.
        """

        new_key, self._main_key = jax.random.split(self._main_key)
        return new_key

    def _write_checkpoint(self,mcmc,out_root):
        """
        Atomically save the final chain state and PRNG key to a dill pickle
        file.
        """

        host_state = jax.device_get(mcmc.last_state)

        out_dict = {"main_key":self._main_key,
                    "last_state":host_state}

        tmp_checkpoint_file = f"{out_root}_checkpoint.tmp.pkl"
        checkpoint_file = f"{out_root}_checkpoint.pkl"

        with open(tmp_checkpoint_file,'wb') as f:
            dill.dump(out_dict,f)
        os.replace(tmp_checkpoint_file,
                   checkpoint_file)

    def _restore_checkpoint(self,checkpoint_file):
        """
        Load a chain state and PRNG key from a checkpoint file.

        Parameters
        ----------
        checkpoint_file : str
            Path to the checkpoint .pkl file.

        Returns
        -------
        Any
            The restored sampler state.
        """

        with open(checkpoint_file, "rb") as f:
            checkpoint_data = dill.load(f)

        last_state = checkpoint_data.get("last_state")
        if last_state is None or not hasattr(last_state,"rng_key"):
            raise ValueError(
                f"checkpoint_file {checkpoint_file} does not appear to have a saved sampler state"
            )

        self._main_key = checkpoint_data["main_key"]

        return last_state

    def _write_posteriors(self,posterior_samples,out_root):
        """
        Atomically save posterior samples to a compressed .npz file.
        """

        tmp_out_file = f"{out_root}_posterior.tmp.npz"
        out_file = f"{out_root}_posterior.npz"

        np.savez_compressed(tmp_out_file,**posterior_samples)

        os.replace(tmp_out_file,out_file)

    def _get_site_names(self,target_sites="deterministic",observed=None):
        """
        Dry-runs the model to extract site names programmatically.

        Parameters
        ----------
        target_sites : str or list of str
            The type of sites to extract (e.g., 'deterministic', 'sample').
        observed : bool, optional
            If True, only observed sites. If False, only latent sites. If
            None, both.

        Returns
        -------
        list
            List of site names found in the model trace.
        """

        if isinstance(target_sites,str):
            target_sites = [target_sites]

        seeded_model = seed(self.model.jax_model, rng_seed=0)
        traced_model = trace(seeded_model)
        model_trace = traced_model.get_trace(data=self.model.data,
                                             priors=self.model.priors)

        site_names = []
        for name, site_info in model_trace.items():
            if site_info["type"] not in target_sites:
                continue
            if observed is not None and site_info.get("is_observed",False) != observed:
                continue
            site_names.append(name)

        return site_names
