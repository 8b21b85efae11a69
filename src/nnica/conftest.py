import pytest

from nnica.utils import generate_toy_data, set_log_level


@pytest.fixture(autouse=True)
def _reset_log_level():
    """Reinstall the default handler so no test leaks a level or a stdout capture."""
    yield
    set_log_level("INFO")


@pytest.fixture(scope="module")
def toy_data():
    """Two non-negative sources mixed into two channels: (X, sources, mixing)."""
    return generate_toy_data(n_samples=1000, seed=42)
