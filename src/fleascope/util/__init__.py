# -*- coding: utf-8 -*-
"""
Utility functions and constants for the FleaScope driver.

- Default timing, retry and calibration constants
- Logging configuration and management

Examples
--------
Logging a session to the console:
```python
from fleascope.util import start_client_log
start_client_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")
```

See Also
--------
fleascope.util.logging : Logging configuration
fleascope.util.defaults : Default constants
"""

from .defaults import (
    DEFAULT_BAUDRATE,
    DEFAULT_CANCEL_DRAIN_TIMEOUT,
    DEFAULT_INIT_TIMEOUT,
    DEFAULT_LOGLEVEL,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    PROMPT,
    REFERENCE_VOLTAGE,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    format_error_response,
    log_default_path_client,
    shutdown_client_log,
    start_client_log,
)

__all__ = [
    "DEFAULT_BAUDRATE",
    "DEFAULT_CANCEL_DRAIN_TIMEOUT",
    "DEFAULT_INIT_TIMEOUT",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "PROMPT",
    "REFERENCE_VOLTAGE",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "log_default_path_client",
    "shutdown_client_log",
    "start_client_log",
]
