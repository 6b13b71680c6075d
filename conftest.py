import logging

import pytest


@pytest.fixture(autouse=True)
def reset_dag_logger():
    """setup_logging() detaches the ``dag`` logger from root; undo that between tests."""
    yield
    logger = logging.getLogger("dag")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
