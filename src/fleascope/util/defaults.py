# -*- coding: utf-8 -*-

DEFAULT_BAUDRATE = 9600
DEFAULT_READ_TIMEOUT = 0.07  # seconds, single serial read
DEFAULT_RETRIES = 3  # Number of times to retry a timed out command
DEFAULT_TIMEOUT = 2.0  # seconds, per attempt, on top of any capture time
DEFAULT_POLL_INTERVAL = 0.05  # seconds, read slice while awaiting a response
DEFAULT_CANCEL_DRAIN_TIMEOUT = 2.0  # seconds
DEFAULT_INIT_TIMEOUT = 1.0  # seconds, "prompt on" during initialisation
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line

PROMPT = "> "
CTRL_C = b"\x03"

REFERENCE_VOLTAGE = 3.3  # volts, full-scale calibration reference
STABLE_SIGNAL_MAX_SPREAD = 14.0  # raw codes
CALIBRATION_CAPTURE_TIME = 0.02  # seconds
