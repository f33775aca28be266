"""日志配置测试"""
import logging

from global_planner.core import logging_config
from global_planner.core.logging_config import ThrottledLogger


def test_throttled_logger_per_key(caplog):
    """测试同一 key 在间隔内只记录一次，不同 key 互不影响"""
    logger = logging.getLogger('global_planner.tests.throttled')
    throttled = ThrottledLogger(logger, min_interval=60.0)

    with caplog.at_level(logging.DEBUG, logger='global_planner.tests.throttled'):
        for _ in range(5):
            throttled.debug("trajectory not active", key='tick_inactive')
        throttled.warning("tick raised", key='tick_error')
        throttled.error("no key")
        throttled.error("no key")

    messages = [record.getMessage() for record in caplog.records]
    assert messages.count("trajectory not active") == 1
    assert messages.count("tick raised") == 1
    assert messages.count("no key") == 2


def test_throttled_logger_zero_interval(caplog):
    logger = logging.getLogger('global_planner.tests.unthrottled')
    throttled = ThrottledLogger(logger, min_interval=0.0)
    with caplog.at_level(logging.INFO, logger='global_planner.tests.unthrottled'):
        throttled.info("map ready", key='ready')
        throttled.info("map ready", key='ready')
    assert [r.getMessage() for r in caplog.records].count("map ready") == 2


def test_default_format():
    assert logging_config.DEFAULT_LEVEL == logging.INFO
    assert '%(name)s' in logging_config.DEFAULT_FORMAT
