import yaml
import re

# Strings that are valid scientific notation (PyYAML leaves "4.6e6" as a str)
_SCI_NOTATION_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)$')


def _normalize_types(node):
    """
    Recursively processes data to:
    1. Convert strings in scientific notation to numbers (float or int).
    2. Convert floats that are whole numbers (e.g., 12.0) to integers.
    """

    # Recurse through lists and dictionaries first.
    if isinstance(node, dict):
        return {k: _normalize_types(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_normalize_types(elem) for elem in node]

    if isinstance(node, str):
        if _SCI_NOTATION_PATTERN.match(node):
            node = float(node)
        else:
            return node

    if isinstance(node, float):
        if node.is_integer():
            return int(node)
        return node

    return node


def read_yaml(cf: str | dict,
              override_keys: dict | None=None) -> dict:
    """
    Load a YAML configuration file.

    Parameters
    ----------
    cf : str or dict
        If string, this is the path to the YAML configuration file. If a dict,
        pass through (assume its already read).
    override_keys : dict, optional
        top-level keys to replace in the loaded configuration. Every key must
        already be present in the file.

    Returns
    -------
    config : dict
        A dictionary containing the configuration parameters.

    Raises
    ------
    FileNotFoundError
        If `cf` is a path that does not exist.
    ValueError
        If the file cannot be parsed, does not hold a mapping, or
        `override_keys` has a key not found in the file.
    """

    if issubclass(type(cf),dict):
        return cf

    try:
        with open(cf, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: '{cf}'") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Could not parse YAML file '{cf}': {e}") from e

    if not isinstance(config, dict):
        raise ValueError(f"YAML file '{cf}' should hold a mapping at the top level.")

    config = _normalize_types(config)

    # Replace keys from the configuration with keyword arguments passed in.
    if override_keys is not None:
        for k in override_keys:
            if k not in config:
                err = f"override_keys has a key '{k}' that was not in configuration."
                raise ValueError(err)
            config[k] = override_keys[k]

    return config
