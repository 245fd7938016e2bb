"""
Generate synthetic fold-change datasets from the MWC repressor model.
"""

from mwcfit.models.mwc_fold_change import fold_change
from mwcfit.util import (
    check_number,
    check_array,
    generalized_main
)

import numpy as np
import pandas as pd
from numpy.random import Generator


def simulate_fold_change(conc,
                         ep_a,
                         ep_i,
                         sigma,
                         R,
                         Nns,
                         ep_ai,
                         ep_r,
                         n_sites,
                         num_replicates=1,
                         rng=None):
    """
    Simulate noisy fold-change measurements.

    Each measurement is the model fold-change at a concentration plus
    independent Normal(0, sigma) noise.

    Parameters
    ----------
    conc : array-like
        effector concentrations (>= 0).
    ep_a, ep_i : float
        log dissociation constants for the active and inactive states.
    sigma : float
        measurement noise standard deviation (> 0).
    R, Nns, ep_ai, ep_r, n_sites :
        fixed experimental constants.
    num_replicates : int, default=1
        number of measurements taken at every concentration.
    rng : numpy.random.Generator or int, optional
        random number generator or seed.

    Returns
    -------
    pandas.DataFrame
        columns replicate, conc, fold_change_true and fold_change.
    """

    conc = check_array(conc,"conc",min_allowed=0)
    sigma = check_number(sigma,"sigma",min_allowed=0,inclusive_min=False)
    num_replicates = check_number(num_replicates,"num_replicates",
                                  cast_type=int,min_allowed=1)

    if not isinstance(rng,Generator):
        rng = np.random.default_rng(rng)

    fc_true = np.asarray(fold_change(R,Nns,ep_r,conc,ep_a,ep_i,ep_ai,n_sites))

    replicate = np.repeat(np.arange(num_replicates),len(conc))
    all_conc = np.tile(conc,num_replicates)
    all_fc_true = np.tile(fc_true,num_replicates)

    noise = rng.normal(loc=0.0,scale=sigma,size=len(all_fc_true))

    return pd.DataFrame({"replicate":replicate,
                         "conc":all_conc,
                         "fold_change_true":all_fc_true,
                         "fold_change":all_fc_true + noise})


def simulate_fold_change_file(out_file,
                              ep_a=-14.0,
                              ep_i=-9.7,
                              sigma=0.05,
                              R=100.0,
                              Nns=4.6e6,
                              ep_ai=4.5,
                              ep_r=-13.9,
                              n_sites=2,
                              min_conc=1e-7,
                              max_conc=5e-3,
                              num_conc=12,
                              num_replicates=3,
                              seed=None):
    """
    Write a simulated fold-change dataset to a csv file. Concentrations are
    zero plus num_conc values spaced logarithmically between min_conc and
    max_conc.
    """

    conc = np.concatenate([[0.0],
                           np.logspace(np.log10(min_conc),
                                       np.log10(max_conc),
                                       num_conc)])

    df = simulate_fold_change(conc,
                              ep_a=ep_a,
                              ep_i=ep_i,
                              sigma=sigma,
                              R=R,
                              Nns=Nns,
                              ep_ai=ep_ai,
                              ep_r=ep_r,
                              n_sites=n_sites,
                              num_replicates=num_replicates,
                              rng=seed)

    df.to_csv(out_file,index=False)
    print(f"Wrote {len(df)} simulated observations to {out_file}",flush=True)

    return df


def main():
    """CLI entry point for simulating a dataset."""
    generalized_main(simulate_fold_change_file,
                     manual_arg_types={"seed":int},
                     prog="mwcfit-simulate")

if __name__ == "__main__":
    main()
