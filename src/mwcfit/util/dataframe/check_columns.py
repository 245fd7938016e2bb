from mwcfit.util.validation import InvalidInputError

def check_columns(df,required_columns):
    """
    Check if a DataFrame contains all required columns.

    Parameters
    ----------
    df : pandas.DataFrame
        The DataFrame to check.
    required_columns : list of str
        Column names that must be present in the DataFrame.

    Raises
    ------
    InvalidInputError
        If any of the required columns are missing. The message lists them.
    """

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        err = "Not all required columns seen. Missing columns:\n"
        for c in missing:
            err += f"    {c}\n"
        err += "\n"
        raise InvalidInputError(err)
