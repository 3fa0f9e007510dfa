import common.flags as FLAG


def PRINTV(verbose, logstr):
    '''
    Print helper with verbosity control.
    '''
    if FLAG.VERBOSE >= verbose:
        print(logstr, flush=True)

def PRINTERR(logstr):
    '''
    Prints an error line regardless of verbosity.
    '''
    print(f'[ERROR] {logstr}', flush=True)
