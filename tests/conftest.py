from __future__ import annotations

import os
import shutil
import tempfile

import pytest


@pytest.fixture
def socket_path():
    # AF_UNIX paths are limited to ~100 bytes; pytest's tmp_path can be longer.
    directory = tempfile.mkdtemp(prefix="cmo-")
    try:
        yield os.path.join(directory, "daemon.sock")
    finally:
        shutil.rmtree(directory, ignore_errors=True)
