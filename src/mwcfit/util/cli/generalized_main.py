import sys
import inspect
import argparse

def generalized_main(fcn,
                     argv=None,
                     manual_arg_defaults=None,
                     manual_arg_types=None,
                     prog=None):
    """
    Build a command line parser from the signature of `fcn`, parse arguments,
    and call `fcn` with them.

    Arguments without defaults become positional. Arguments with defaults
    become `--name` options typed by their default. A default of None gives
    an untyped (string) option unless a type is supplied in
    `manual_arg_types`. Boolean defaults become flags that flip the default.

    Parameters
    ----------
    fcn : callable
        function to run.
    argv : iterable, optional
        arguments to parse. if None, use sys.argv[1:]
    manual_arg_defaults : dict, optional
        dictionary keying arguments to defaults that differ from the signature.
        The argument type is set to the type of the value specified.
    manual_arg_types : dict, optional
        dictionary keying arguments to types. This overrides the types inferred
        from the signature or manual_arg_defaults.
    prog : str, optional
        program name shown in help. defaults to the function name.

    Returns
    -------
    object
        whatever `fcn` returns
    """

    if argv is None:
        argv = sys.argv[1:]

    if manual_arg_types is None:
        manual_arg_types = {}

    if manual_arg_defaults is None:
        manual_arg_defaults = {}

    if prog is None:
        prog = fcn.__name__

    parser = argparse.ArgumentParser(prog=prog,
                                     description=inspect.getdoc(fcn),
                                     formatter_class=argparse.RawTextHelpFormatter)

    param = inspect.signature(fcn).parameters
    for p in param:

        if param[p].kind in (param[p].VAR_POSITIONAL, param[p].VAR_KEYWORD):
            continue

        if p in manual_arg_defaults:
            default = manual_arg_defaults[p]
            required = False
        elif param[p].default is not param[p].empty:
            default = param[p].default
            required = False
        else:
            default = None
            required = True

        if default is None:
            arg_type = None
        else:
            arg_type = type(default)

        # manual_arg_type takes precedence over any types inferred above.
        if p in manual_arg_types:
            arg_type = manual_arg_types[p]

        if required:
            parser.add_argument(p,type=arg_type)
        elif arg_type is bool:
            action = "store_false" if default else "store_true"
            parser.add_argument(f"--{p}",action=action)
        else:
            parser.add_argument(f"--{p}",type=arg_type,default=default)

    args = parser.parse_args(argv)

    return fcn(**vars(args))
