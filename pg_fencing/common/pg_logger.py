import logging
import sys

logger_properties = {
    'log_level': 'DEBUG',
    'entry': '%(asctime)s %(levelname)s\t[%(thread)d] [%(threadName)s] '
             '(%(filename)s:%(funcName)s:%(lineno)d) - %(message)s'
}


def get_stdout_logger():
    fencing_logger = logging.getLogger("pg_fencing_logger")

    if not getattr(fencing_logger, 'handler_set', None):
        fencing_logger.setLevel(logger_properties['log_level'])
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(logger_properties['entry'])
        handler.setFormatter(formatter)
        fencing_logger.addHandler(handler)

        fencing_logger.handler_set = True

    return fencing_logger


def set_log_level(log_level_to_set):
    """
    In order to set non-default log level this function should be called before first call of get_stdout_logger
    :param log_level_to_set:
    """
    if log_level_to_set:
        logger_properties['log_level'] = log_level_to_set.upper()
        fencing_logger = logging.getLogger("pg_fencing_logger")
        fencing_logger.setLevel(logger_properties['log_level'])
