from mwcfit.plot.default_styles import PARAM_LABELS

import corner
import numpy as np

def corner_plot(posteriors,
                param_names=None,
                truths=None,
                max_num_samples=20000):
    """
    Corner plot of the joint posterior of the sampled parameters.

    Parameters
    ----------
    posteriors : dict or numpy NpzFile
        posterior samples keyed by parameter name.
    param_names : list of str, optional
        parameters to plot. defaults to ["ep_a","ep_i","sigma"].
    truths : dict, optional
        known values keyed by parameter name (e.g. for simulated data).
    max_num_samples : int, default=20000
        thin the draws to at most this many so the plot stays fast.

    Returns
    -------
    fig : matplotlib.Figure
        figure holding the corner plot
    """

    if param_names is None:
        param_names = ["ep_a","ep_i","sigma"]

    missing = [p for p in param_names if p not in posteriors]
    if missing:
        raise ValueError(f"parameters {missing} not found in posteriors")

    samples = np.stack([np.asarray(posteriors[p]).ravel() for p in param_names],
                       axis=1)

    if len(samples) > max_num_samples:
        step = int(np.ceil(len(samples)/max_num_samples))
        samples = samples[::step]

    truth_values = None
    if truths is not None:
        truth_values = [truths.get(p,None) for p in param_names]

    labels = [PARAM_LABELS.get(p,p) for p in param_names]

    fig = corner.corner(samples,
                        truths=truth_values,
                        labels=labels)

    return fig
