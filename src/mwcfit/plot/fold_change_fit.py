from mwcfit.plot.default_styles import (
    DEFAULT_SCATTER_KWARGS,
    DEFAULT_FIT_LINE_KWARGS,
    DEFAULT_INTERVAL_KWARGS
)

from matplotlib import pyplot as plt

import copy

def fold_change_fit(obs_df,
                    curve_df,
                    zero_conc_value=None,
                    est_column="median",
                    lower_column="lower_95",
                    upper_column="upper_95",
                    scatter_kwargs=None,
                    fit_line_kwargs=None,
                    ax=None):
    """
    Plot observed fold-change against the posterior fold-change curve.

    Parameters
    ----------
    obs_df : pandas.DataFrame
        observations with columns conc and fold_change.
    curve_df : pandas.DataFrame
        output of ModelClass.extract_fold_change_curves (column conc plus
        quantile columns).
    zero_conc_value : float, optional
        concentration used to draw c = 0 on the log axis. If None, use a
        tenth of the smallest non-zero concentration.
    est_column, lower_column, upper_column : str
        columns in curve_df drawn as the line and the shaded interval.
    scatter_kwargs : dict, optional
        override the default scatter styling.
    fit_line_kwargs : dict, optional
        override the default line styling.
    ax : matplotlib.axes.Axes, optional
        axis to draw on. If None, make a new figure.

    Returns
    -------
    matplotlib.axes.Axes
    """

    obs_df = obs_df.copy()
    curve_df = curve_df.copy()

    if zero_conc_value is None:
        nonzero = list(obs_df.loc[obs_df["conc"] > 0,"conc"])
        nonzero += list(curve_df.loc[curve_df["conc"] > 0,"conc"])
        zero_conc_value = min(nonzero)/10 if nonzero else 1.0

    obs_df.loc[obs_df["conc"] == 0,"conc"] = zero_conc_value
    curve_df.loc[curve_df["conc"] == 0,"conc"] = zero_conc_value
    curve_df = curve_df.sort_values("conc")

    if ax is None:
        _, ax = plt.subplots(1,figsize=(6,6))

    final_scatter_kwargs = copy.deepcopy(DEFAULT_SCATTER_KWARGS)
    if scatter_kwargs is not None:
        final_scatter_kwargs.update(scatter_kwargs)

    final_fit_line_kwargs = copy.deepcopy(DEFAULT_FIT_LINE_KWARGS)
    if fit_line_kwargs is not None:
        final_fit_line_kwargs.update(fit_line_kwargs)

    ax.fill_between(curve_df["conc"],
                    curve_df[lower_column],
                    curve_df[upper_column],
                    **DEFAULT_INTERVAL_KWARGS)

    ax.plot(curve_df["conc"],
            curve_df[est_column],
            "-",
            zorder=30,
            **final_fit_line_kwargs)

    ax.scatter(obs_df["conc"],
               obs_df["fold_change"],
               zorder=40,
               **final_scatter_kwargs)

    ax.set_xscale('log')
    ax.set_xlabel("[effector] (M)")
    ax.set_ylabel("fold-change")

    return ax
