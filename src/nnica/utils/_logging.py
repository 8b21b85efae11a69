import numbers
import sys
from contextlib import contextmanager

from loguru import logger

from nnica.exceptions import InvalidArgumentError

FORMAT = "<level>{level: <8}</level> | {message} - <cyan>{name}</cyan>:<cyan>{function}</cyan>"  # noqa E501

# Remove default loguru handler so we control formatting
logger.remove()

# id and level of the stdout handler owned by nnica
_handler = {"id": None, "level": "INFO"}


def _install_handler(level: str | int) -> None:
    # the old handler is removed only once the new one is installed
    new_id = logger.add(
        sys.stdout,
        level=level,
        colorize=True,
        format=FORMAT,
    )
    old_id, _handler["id"] = _handler["id"], new_id
    _handler["level"] = level
    if old_id is not None:
        logger.remove(old_id)


_install_handler("INFO")


def _coerce_level(verbose: str | int | bool | None) -> str | int:
    if verbose is None:
        return "INFO"
    if isinstance(verbose, bool):
        return "INFO" if verbose else "WARNING"
    if isinstance(verbose, str):
        name = verbose.upper()
        try:
            logger.level(name)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown log level {verbose!r}") from e
        return name
    if isinstance(verbose, numbers.Integral) and verbose >= 0:
        return int(verbose)
    raise InvalidArgumentError(
        f"verbose must be None, a bool, a level name or a non-negative int, "
        f"got {verbose!r}"
    )


def set_log_level(verbose: str | int | bool | None) -> None:
    """Set global log level for nnica.

    Parameters
    ----------
    verbose : str or int or bool or None, default=None
        Control verbosity of the logging output. If a str, it can be either
        ``"DEBUG"``, ``"INFO"``, ``"WARNING"``, ``"ERROR"``, or ``"CRITICAL"``
        (case-insensitive). An int is read as a :mod:`logging` level such as
        ``logging.DEBUG``. For ``bool``, ``True`` is the same as ``"INFO"``,
        ``False`` is the same as ``"WARNING"``. If ``None``, defaults to ``"INFO"``.

    Raises
    ------
    InvalidArgumentError
        If ``verbose`` is not a known level. The current level is kept.
    """
    _install_handler(_coerce_level(verbose))


@contextmanager
def use_log_level(verbose: str | int | bool | None):
    """Temporarily change the log level, restoring the previous one on exit.

    ``verbose=None`` leaves the current level untouched.
    """
    if verbose is None:
        yield
        return
    previous = _handler["level"]
    try:
        set_log_level(verbose)
        yield
    finally:
        _install_handler(previous)


def log(msg: str, level: str = "info", color: str = None, weight: str = None) -> None:
    """Wrap around loguru logger for cleaner colored messages.

    Example: log("Solver converged", level="info", color="green", weight="bold")
    """
    if color:
        msg = f"<{color}>{msg}</{color}>"

    if weight == "bold":
        msg = f"<lvl>{msg}</lvl>"

    # Use logger.opt(colors=True) so Loguru interprets style tags
    getattr(logger.opt(colors=True, depth=1), level)(msg)
