import logging

from dealfinder.utils.logging import configure_logging, get_logger


def test_child_loggers_share_one_handler():
    first = get_logger("services.comps")
    second = get_logger("db.snapshot")
    base = logging.getLogger("dealfinder")

    assert first.name == "dealfinder.services.comps"
    assert second.name == "dealfinder.db.snapshot"
    assert len(base.handlers) == 1
    assert base.propagate is False


def test_level_override_is_applied_to_configured_logger():
    base = logging.getLogger("dealfinder")
    previous = base.level
    try:
        assert configure_logging(level="debug").level == logging.DEBUG
        assert get_logger("services.rankings").isEnabledFor(logging.DEBUG)
        assert len(base.handlers) == 1
    finally:
        base.setLevel(previous)
