"""
Executors for independent tasks.

An executor is any object with ``map(tasks) -> list`` where ``tasks`` is a
sequence of zero-argument callables and the i-th result belongs to the i-th
task, whatever order they ran in.
"""

from joblib import Parallel, delayed
from tqdm import tqdm


def _call(task):
    return task()


class SerialExecutor:
    """Run tasks one after another in the calling thread."""

    def __init__(self, verbose=False, desc=None):
        self.verbose = verbose
        self.desc = desc

    def map(self, tasks):
        return [task() for task in tqdm(tasks, disable=not self.verbose, desc=self.desc)]


class JoblibExecutor:
    """Run tasks with ``joblib.Parallel``.

    Parameters
    ----------
    n_jobs : int
        Number of parallel jobs (-1 = all cores).
    backend : str, optional
        joblib backend; default lets joblib choose.
    verbose : bool
        Show a progress bar.
    """

    def __init__(self, n_jobs=1, backend=None, verbose=False, desc=None):
        self.n_jobs = n_jobs
        self.backend = backend
        self.verbose = verbose
        self.desc = desc

    def map(self, tasks):
        # len() is needed for the bar total; results come back in task order
        jobs = [delayed(_call)(task) for task in tasks]
        results = []
        with tqdm(total=len(jobs), disable=not self.verbose, desc=self.desc) as pbar:
            for out in Parallel(n_jobs=self.n_jobs, backend=self.backend,
                                return_as="generator")(jobs):
                results.append(out)
                pbar.update(1)
        return results


def get_executor(executor=None, n_jobs=1, verbose=False, desc=None):
    """Return ``executor`` or build the default one for ``n_jobs``."""
    if executor is not None:
        return executor
    if n_jobs == 1:
        return SerialExecutor(verbose=verbose, desc=desc)
    return JoblibExecutor(n_jobs=n_jobs, verbose=verbose, desc=desc)
