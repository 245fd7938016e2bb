import numpy as np
import pandas as pd

def read_dataframe(input,
                   remove_extra_index=True):
    """
    Read a spreadsheet. Handles .csv, .tsv, .xlsx/.xls. If extension is
    not one of these, attempts to parse text as a spreadsheet using
    `pandas.read_csv(sep=None)`.

    Parameters
    ----------
    input : pandas.DataFrame or str
        either a pandas dataframe OR the filename to read in.
    remove_extra_index : bool, default=True
        look for an 'Unnamed: 0' column that pandas writes out and drop it
        if it holds the integers 0..L-1.

    Returns
    -------
    pandas.DataFrame
        read in dataframe (a copy if a dataframe was passed in)
    """

    if isinstance(input, str):

        ext = input.split(".")[-1].strip().lower()

        if ext in ["xlsx","xls"]:
            df = pd.read_excel(input)
        elif ext == "csv":
            df = pd.read_csv(input,sep=",")
        elif ext == "tsv":
            df = pd.read_csv(input,sep="\t")
        else:
            df = pd.read_csv(input,sep=None,engine="python")

    elif isinstance(input, pd.DataFrame):
        df = input.copy()

    else:
        err = f"\n\n'input' {input} not recognized. Should be the filename of\n"
        err += "spreadsheet or a pandas dataframe.\n"
        raise ValueError(err)

    if remove_extra_index and len(df.columns) > 0:
        first = str(df.columns[0])
        if first.startswith("Unnamed:"):
            possible_index = df.loc[:,df.columns[0]]
            if np.issubdtype(possible_index.dtypes,np.integer):
                if np.array_equal(possible_index,np.arange(len(possible_index),dtype=int)):
                    df = df.drop(columns=[df.columns[0]])

    return df
