from ._logging import (
    logger as logger,
)
from ._logging import (
    set_log_level as set_log_level,
)
from ._logging import (
    use_log_level as use_log_level,
)
from .evaluation import match_sources as match_sources
from .simulation import generate_toy_data as generate_toy_data
