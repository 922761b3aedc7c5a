import logging

import pytest


@pytest.fixture(autouse=True)
def reset_meshnorm_logger():
    yield
    # main() attaches handlers bound to the captured streams of the test that ran it
    logger = logging.getLogger("meshnorm")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
