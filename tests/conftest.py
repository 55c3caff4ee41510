import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the engine attaches so streams don't leak between tests."""
    yield
    package_logger = logging.getLogger("exam_parser")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
