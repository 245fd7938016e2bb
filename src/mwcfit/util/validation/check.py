import numpy as np
from typing import Any, Callable, Optional, TypeVar

# Define a generic Numeric type for hinting
_Numeric = TypeVar("_Numeric", int, float)


class InvalidInputError(ValueError):
    """
    Raised when data or constants handed to a model are unusable. These are
    detected before any sampling begins and are fatal for the fit.
    """


def check_number(
    value: Any,
    param_name: Optional[str] = None,
    cast_type: Callable[[Any], _Numeric] = float,
    min_allowed: Optional[_Numeric] = None,
    max_allowed: Optional[_Numeric] = None,
    inclusive_min: bool = True,
    inclusive_max: bool = True,
    allow_none: bool = False,
) -> Optional[_Numeric]:
    """
    Validate and cast a scalar numerical value.

    Parameters
    ----------
    value : Any
        The value to validate.
    param_name : str, optional
        The name of the parameter being checked, used for clearer error messages.
    cast_type : Callable, default: float
        A function to cast the value to (e.g., `int`, `float`). If `int`, the
        value must already be a whole number (2.0 is allowed, 2.5 is not).
    min_allowed : int or float, optional
        The minimum allowed value. If None, no minimum is enforced.
    max_allowed : int or float, optional
        The maximum allowed value. If None, no maximum is enforced.
    inclusive_min : bool, default: True
        Whether the minimum bound is inclusive (value >= min_allowed).
    inclusive_max : bool, default: True
        Whether the maximum bound is inclusive (value <= max_allowed).
    allow_none : bool, default: False
        If True, a `value` of None is permissible and will be returned as None.

    Returns
    -------
    _Numeric or None
        The cast and validated value, or None if the input was None and
        `allow_none` was True.

    Raises
    ------
    InvalidInputError
        If the value is None (and not `allow_none`), is not a finite scalar,
        fails to cast, or falls outside the allowed range.
    """

    if value is None:
        if allow_none:
            return None
        raise InvalidInputError(f"{param_name} cannot be None")

    try:
        if not np.isscalar(value) or isinstance(value, (str, bytes, bool)):
            raise TypeError("Value must be a numeric scalar.")

        if not np.isfinite(value):
            raise ValueError("Value must be finite.")

        # Refuse to silently truncate when an integer count is requested
        if cast_type is int and float(value) != int(value):
            raise ValueError("Value must be a whole number.")

        v_cast = cast_type(value)

        if min_allowed is not None:
            if inclusive_min and v_cast < min_allowed:
                raise ValueError(f"Value must be >= {min_allowed}.")
            if not inclusive_min and v_cast <= min_allowed:
                raise ValueError(f"Value must be > {min_allowed}.")
        if max_allowed is not None:
            if inclusive_max and v_cast > max_allowed:
                raise ValueError(f"Value must be <= {max_allowed}.")
            if not inclusive_max and v_cast >= max_allowed:
                raise ValueError(f"Value must be < {max_allowed}.")

    except (ValueError, TypeError) as e:
        raise InvalidInputError(
            f"Could not process parameter '{param_name}' with value '{value}'.\n"
            f"Reason: {e}"
        ) from e

    return v_cast


def check_array(value: Any,
                param_name: Optional[str] = None,
                expected_length: Optional[int] = None,
                min_allowed: Optional[float] = None) -> np.ndarray:
    """
    Validate a one-dimensional sequence of finite numbers.

    Parameters
    ----------
    value : array-like
        The sequence to validate.
    param_name : str, optional
        Name used in error messages.
    expected_length : int, optional
        If given, the sequence must have exactly this many entries.
    min_allowed : float, optional
        If given, every entry must be >= this value.

    Returns
    -------
    numpy.ndarray
        float64 copy of `value`.

    Raises
    ------
    InvalidInputError
        If the sequence is not 1D, is empty, contains non-finite values, has
        the wrong length, or has an entry below `min_allowed`.
    """

    try:
        arr = np.array(value, dtype=float)
    except (ValueError, TypeError) as e:
        raise InvalidInputError(
            f"'{param_name}' could not be coerced to a float array.\nReason: {e}"
        ) from e

    if arr.ndim != 1:
        raise InvalidInputError(
            f"'{param_name}' must be one-dimensional (got shape {arr.shape})."
        )

    if len(arr) == 0:
        raise InvalidInputError(f"'{param_name}' cannot be empty.")

    if not np.all(np.isfinite(arr)):
        raise InvalidInputError(f"'{param_name}' must contain only finite values.")

    if expected_length is not None and len(arr) != expected_length:
        raise InvalidInputError(
            f"'{param_name}' has {len(arr)} entries but {expected_length} were expected."
        )

    if min_allowed is not None and np.any(arr < min_allowed):
        raise InvalidInputError(
            f"all entries in '{param_name}' must be >= {min_allowed}."
        )

    return arr
