import os
import shutil
import tempfile

import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_user_directory():
    """Point the per-user configuration directory at a scratch location.

    Tests must never read or write the real ``~/.prd_helper`` directory
    (configuration or persisted AI consent). The variable is restored
    afterwards.
    """
    scratch = tempfile.mkdtemp(prefix="prd_helper_home_")
    previous = os.environ.get("PRD_HELPER_HOME")
    os.environ["PRD_HELPER_HOME"] = scratch
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop("PRD_HELPER_HOME", None)
        else:
            os.environ["PRD_HELPER_HOME"] = previous
        shutil.rmtree(scratch, ignore_errors=True)
