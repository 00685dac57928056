"""In-memory stand-ins for the FleaScope hardware collaborators.

- `MockFleaTerminal`: emulated device terminal, a `SerialChannelProtocol`
- `MockFlashStorage`: dictionary-backed `FlashStorageProtocol`

Examples
--------
```python
from fleascope.device import FleaScope
from fleascope.device.mock import MockFleaTerminal

scope = FleaScope(channel=MockFleaTerminal(input_raw=2048))
ok, msg = scope.open()
```
"""

from .mock_flash import MockFlashStorage
from .mock_terminal import MockFleaTerminal

__all__ = ["MockFlashStorage", "MockFleaTerminal"]
