"""
Configuration loading for prd_helper.

Provides the loader for the optional user configuration file and the
store for persisted state such as the AI data-sharing consent. See
:mod:`prd_helper.config.loader` and :mod:`prd_helper.config.state`.
"""

from .loader import AISettings, ConfigError, Settings, load_config  # noqa: F401
from .state import ConsentStore  # noqa: F401
