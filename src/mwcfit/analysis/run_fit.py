from mwcfit.analysis.fold_change_model import ModelClass
from mwcfit.analysis.run_inference import RunInference
from mwcfit.util import (
    InvalidInputError,
    generalized_main
)

import os

DEFAULT_SAMPLER = {"kernel":"nuts",
                   "num_warmup":1000,
                   "num_samples":2000,
                   "num_chains":1,
                   "chain_method":"sequential",
                   "target_accept_prob":0.8,
                   "progress_bar":True}


def _resolve_data_path(fold_change_df,config_file):
    """
    Paths in the config are taken as given if they exist, otherwise relative
    to the directory holding the config file.
    """

    if os.path.isabs(fold_change_df) or os.path.exists(fold_change_df):
        return fold_change_df

    config_dir = os.path.dirname(os.path.abspath(config_file))
    return os.path.join(config_dir,fold_change_df)


def _build_sampler_settings(config_sampler,overrides):

    unrecognized = set(config_sampler) - set(DEFAULT_SAMPLER)
    if unrecognized:
        raise InvalidInputError(
            f"unrecognized sampler settings: {sorted(unrecognized)}"
        )

    sampler = dict(DEFAULT_SAMPLER)
    sampler.update(config_sampler)
    for k, v in overrides.items():
        if v is not None:
            sampler[k] = v

    return sampler


def run_fit(config_file,
            out_root="mwcfit",
            seed=0,
            kernel=None,
            num_warmup=None,
            num_samples=None,
            num_chains=None,
            find_map=False,
            checkpoint=None):
    """
    Sample the posterior of the fold-change model described in a YAML
    configuration file.

    Writes {out_root}_posterior.npz (posterior draws),
    {out_root}_checkpoint.pkl (sampler state), {out_root}_diagnostics.csv
    (summary, n_eff, r_hat) and {out_root}_config.yaml (settings used).

    Parameters
    ----------
    config_file : str
        YAML file with fold_change_df, constants, and optional priors and
        sampler sections.
    out_root : str, optional
        root name for output files.
    seed : int, optional
        random seed.
    kernel : str, optional
        override the sampler kernel ('nuts', 'hmc', 'sa').
    num_warmup : int, optional
        override the number of warm-up steps.
    num_samples : int, optional
        override the number of draws per chain.
    num_chains : int, optional
        override the number of chains.
    find_map : bool, optional
        start chains from a MAP estimate found by SVI.
    checkpoint : str, optional
        continue sampling from a checkpoint written by a previous run.

    Returns
    -------
    dict
        posterior draws keyed by site name.
    """

    fold_change_df, constants, priors, config_sampler = ModelClass.load_config(config_file)
    fold_change_df = _resolve_data_path(fold_change_df,config_file)

    model = ModelClass(fold_change_df,
                       R=constants["R"],
                       Nns=constants["Nns"],
                       ep_ai=constants["ep_ai"],
                       ep_r=constants["ep_r"],
                       n_sites=constants["n_sites"],
                       priors=priors)

    sampler = _build_sampler_settings(config_sampler,
                                      {"kernel":kernel,
                                       "num_warmup":num_warmup,
                                       "num_samples":num_samples,
                                       "num_chains":num_chains})

    print(f"Loaded {model.data.num_obs} observations from {fold_change_df}",
          flush=True)

    ri = RunInference(model,seed=seed)

    init_params = None
    if find_map:
        init_params = ri.find_map()

    mcmc = ri.setup_mcmc(init_params=init_params,**sampler)
    samples = ri.run_mcmc(mcmc,out_root=out_root,checkpoint=checkpoint)

    diagnostics = ri.get_diagnostics(mcmc)
    diagnostics.to_csv(f"{out_root}_diagnostics.csv",index=False)
    print(diagnostics.to_string(index=False),flush=True)

    model.write_config(fold_change_df,out_root,sampler=sampler)

    return samples


def main():
    """CLI entry point for fitting the fold-change model."""
    generalized_main(run_fit,
                     manual_arg_types={"kernel":str,
                                       "num_warmup":int,
                                       "num_samples":int,
                                       "num_chains":int,
                                       "checkpoint":str},
                     prog="mwcfit-run-fit")

if __name__ == "__main__":
    main()
