DEFAULT_SCATTER_KWARGS = {
    "s":40,
    "alpha":1.0,
    "edgecolor":"royalblue",
    "facecolor":"none"
}

DEFAULT_FIT_LINE_KWARGS = {
    "lw":2,
    "color":"firebrick"
}

DEFAULT_INTERVAL_KWARGS = {
    "color":"lightgray",
    "zorder":0
}

# Axis labels for the sampled parameters
PARAM_LABELS = {
    "ep_a":r"$\epsilon_A$ ($k_BT$)",
    "ep_i":r"$\epsilon_I$ ($k_BT$)",
    "sigma":r"$\sigma$"
}
