from taxiquery._version import VERSION, __version__


def run_analysis(*args, **kwargs):
    from taxiquery.runner import run_analysis as _run_analysis

    return _run_analysis(*args, **kwargs)
