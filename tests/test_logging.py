"""Tests for the PprintLogger and setup_logging functionality."""

import logging
from io import StringIO

import pytest
from pydantic import BaseModel

from personres.logging import PprintLogger, setup_logging


class _Sample(BaseModel):
    name: str
    count: int


@pytest.fixture
def captured():
    """A PprintLogger writing to an in-memory stream."""
    logger = logging.getLogger("personres.tests.captured")
    logger.setLevel(logging.DEBUG)
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    yield PprintLogger(logger), stream
    logger.removeHandler(handler)


class TestPprintLogger:
    """Formatting and delegation."""

    def test_pprint_formats_dict(self, captured):
        pprint_logger, stream = captured
        pprint_logger.info({"message": "refreshed", "counts": {"groups": 2}})
        output = stream.getvalue()
        assert "'message': 'refreshed'" in output
        assert "'groups': 2" in output

    def test_pprint_false_uses_str(self, captured):
        pprint_logger, stream = captured
        pprint_logger.info("plain %s", "text", pprint=False)
        assert "plain text" in stream.getvalue()

    def test_pydantic_model_dumped_as_json(self, captured):
        pprint_logger, stream = captured
        pprint_logger.warning(_Sample(name="group", count=3))
        output = stream.getvalue()
        assert '"name": "group"' in output
        assert '"count": 3' in output

    def test_all_levels(self, captured):
        pprint_logger, stream = captured
        pprint_logger.debug("d")
        pprint_logger.error("e")
        output = stream.getvalue()
        assert "'d'" in output
        assert "'e'" in output

    def test_delegates_attributes(self, captured):
        pprint_logger, _ = captured
        assert pprint_logger.name == "personres.tests.captured"
        assert pprint_logger.isEnabledFor(logging.DEBUG)


class TestSetupLogging:
    """setup_logging names loggers after the caller and adds one handler."""

    def test_named_after_calling_module(self):
        pprint_logger = setup_logging()
        assert pprint_logger.name == __name__

    def test_explicit_name_and_single_handler(self):
        first = setup_logging(logging.DEBUG, name="personres.tests.setup")
        second = setup_logging(logging.DEBUG, name="personres.tests.setup")
        assert first.name == "personres.tests.setup"
        assert len(second.handlers) == 1
        assert second.level == logging.DEBUG
