# -*- coding: utf-8 -*-
"""# FleaScope

A (python) driver for the FleaScope USB-serial oscilloscope: trigger encoding,
probe calibration, command exchange with the device terminal and conversion of
captures into time-indexed samples.

- `fleascope.types`: data model, collaborator protocols and errors
- `fleascope.acquisition`: trigger encoder, calibration store, capture timing
  and response parser
- `fleascope.device`: the `FleaScope` device, protocol client, serial channel
  and flash storage, plus mocks in `fleascope.device.mock`
- `fleascope.config`: per-scope settings and their INI file
- `fleascope.util`: defaults and logging
"""

from ._version import __version__
