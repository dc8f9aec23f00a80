import logging

from shared.log import GenericFormatter, get_logger, log_lsh_message
from shared.message import ChatMessage


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("lsh.session", logging.INFO, __file__, 1, "Send message", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_prefixes_message_context():
    formatter = GenericFormatter(fmt="%(message)s")
    line = formatter.format(make_record(msg_type="message", channel="C1", attempt=2))
    assert line == "[msg=message channel=C1 attempt=2] Send message"


def test_formatter_without_context():
    formatter = GenericFormatter(fmt="%(message)s")
    assert formatter.format(make_record()) == "Send message"


def test_log_lsh_message_extracts_context():
    records = []

    class Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    logger = get_logger("tests.log_context")
    handler = Collect()
    logger.addHandler(handler)
    try:
        log_lsh_message(logger, "info", "Send message",
                        message=ChatMessage(user="bob", text="hi", channel="C1"), attempt=1)
    finally:
        logger.removeHandler(handler)

    assert records[0].msg_type == "message"
    assert records[0].channel == "C1"
    assert records[0].user == "bob"
    assert records[0].attempt == 1
