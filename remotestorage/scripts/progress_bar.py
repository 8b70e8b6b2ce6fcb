"""Progress reporting for the maintenance scripts."""

import contextlib

from progressbar import BouncingBar, Counter, ProgressBar, Timer, UnknownLength


def widgets(action, action_length=25):
    """Widgets of a bar counting items of unknown total number."""
    return [
        ' [', Timer(format='Time: %(elapsed)s'), '] ',
        ' {} '.format(action).ljust(action_length),
        ' ', Counter(), ' ',
        BouncingBar(),
    ]


@contextlib.contextmanager
def conditional(show, **kwargs):
    """A ProgressBar of unknown length, or a stand-in when it's hidden.

    Returns:
        if ``show`` is set, an actual bar instance.
        Otherwise, an object with a no-op update() method.
    """
    if show:
        kwargs.setdefault('max_value', UnknownLength)
        with ProgressBar(**kwargs) as bar:
            yield bar
    else:
        yield _BarStub()


class _BarStub:
    def update(*args, **kwargs):
        pass
