from mwcfit.analysis.fold_change_model import ModelClass
from mwcfit.analysis.run_fit import _resolve_data_path
from mwcfit.util import generalized_main

import numpy as np
import os

def summarize_posteriors(posterior_file,
                         config_file,
                         out_root="mwcfit"):
    """
    Summarize posterior samples from a fold-change model run.

    This function loads the model configuration and posterior samples and
    writes {out_root}_params.csv (posterior quantiles of ep_a, ep_i, sigma),
    {out_root}_fold_change_pred.csv (predicted fold-change at each
    observation) and {out_root}_fold_change_curves.csv (posterior fold-change
    curve over the observed concentration range).

    Parameters
    ----------
    posterior_file : str
        Path to the .npz file containing posterior samples.
    config_file : str
        Path to the YAML configuration file.
    out_root : str, optional
        Root filename for output CSV files (default "mwcfit").
    """

    fold_change_df, constants, priors, _ = ModelClass.load_config(config_file)
    fold_change_df = _resolve_data_path(fold_change_df,config_file)

    model = ModelClass(fold_change_df,
                       R=constants["R"],
                       Nns=constants["Nns"],
                       ep_ai=constants["ep_ai"],
                       ep_r=constants["ep_r"],
                       n_sites=constants["n_sites"],
                       priors=priors)

    if not os.path.exists(posterior_file):
        raise FileNotFoundError(f"Posterior file not found: {posterior_file}")

    with np.load(posterior_file) as posteriors:

        print(f"Extracting parameters to {out_root}_params.csv...", flush=True)
        params_df = model.extract_parameters(posteriors)
        params_df.to_csv(f"{out_root}_params.csv", index=False)

        print(f"Extracting predictions to {out_root}_fold_change_pred.csv...", flush=True)
        pred_df = model.extract_fold_change_predictions(posteriors)
        pred_df.to_csv(f"{out_root}_fold_change_pred.csv", index=False)

        print(f"Extracting curves to {out_root}_fold_change_curves.csv...", flush=True)
        curves_df = model.extract_fold_change_curves(posteriors)
        curves_df.to_csv(f"{out_root}_fold_change_curves.csv", index=False)

    print("Summarization complete.", flush=True)

def main():
    """CLI entry point for summarizing posteriors."""
    generalized_main(summarize_posteriors,prog="mwcfit-summarize")

if __name__ == "__main__":
    main()
