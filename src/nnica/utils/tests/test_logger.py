import logging

import pytest

from nnica import InvalidArgumentError
from nnica.utils import _logging, logger, use_log_level


@pytest.mark.parametrize("verbose,expected", [
    (None, "INFO"),
    (True, "INFO"),
    (False, "WARNING"),
    ("debug", "DEBUG"),
    (20, "INFO"),
    (logging.DEBUG, "DEBUG"),
])
def test_set_log_level_coercion(verbose, expected, capsys):
    """Ensure bools and None are coerced correctly."""
    _logging.set_log_level(verbose)
    logger.log(expected, "message")
    assert expected in capsys.readouterr().out


def test_quiet_level_drops_info(capsys):
    _logging.set_log_level(False)
    logger.info("hidden")
    logger.warning("shown")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out


def test_use_log_level(capsys):
    """The previous level is restored on exit, even after an error."""
    _logging.set_log_level("WARNING")
    with use_log_level("DEBUG"):
        logger.debug("inside")
    logger.debug("outside")
    out = capsys.readouterr().out
    assert "inside" in out
    assert "outside" not in out

    with pytest.raises(RuntimeError):
        with use_log_level("DEBUG"):
            raise RuntimeError("boom")
    assert _logging._handler["level"] == "WARNING"

    with use_log_level(None):
        assert _logging._handler["level"] == "WARNING"


def test_log_colors(capsys):
    _logging.set_log_level("INFO")
    _logging.log("Converged after 3 iterations", color="green", weight="bold")
    assert "Converged after 3 iterations" in capsys.readouterr().out


@pytest.mark.parametrize("verbose", ["LOUD", -10, 1.5, "info "])
def test_invalid_level_keeps_handler(verbose, capsys):
    """A rejected level leaves the current handler in place and working."""
    _logging.set_log_level("WARNING")
    with pytest.raises(InvalidArgumentError):
        _logging.set_log_level(verbose)
    with pytest.raises(InvalidArgumentError):
        with use_log_level(verbose):
            pass
    assert _logging._handler["level"] == "WARNING"
    logger.warning("still logging")
    assert "still logging" in capsys.readouterr().out

    # the level can still be changed afterwards
    _logging.set_log_level("DEBUG")
    logger.debug("debug now")
    assert "debug now" in capsys.readouterr().out
