import os

import pytest


@pytest.fixture(scope="session")
def fleascope_port():
    """Serial port of an attached FleaScope, from $FLEASCOPE_PORT."""
    port = os.environ.get("FLEASCOPE_PORT")
    if not port:
        pytest.skip("FLEASCOPE_PORT not set")
    return port
