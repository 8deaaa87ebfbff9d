"""Logging setup: one handler on the ``app`` logger, plain text or JSON lines."""

import logging
from logging.handlers import TimedRotatingFileHandler

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = '[%(asctime)s] %(levelname)s in %(name)s: %(message)s'
JSON_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def build_formatter(log_format):
    if log_format == 'json':
        return JsonFormatter(JSON_FORMAT, rename_fields={'levelname': 'level'})
    return logging.Formatter(TEXT_FORMAT)


def configure_logging(app):
    """Attach the configured handler to the ``app`` package logger and ``app.logger``.

    Calling it again (e.g. one app per test) replaces the previous handler.
    """
    level = app.config.get('LOG_LEVEL', 'INFO')
    log_file = app.config.get('LOG_FILE')

    if log_file:
        handler = TimedRotatingFileHandler(
            log_file, when='midnight', backupCount=app.config.get('LOG_BACKUP_COUNT', 7),
            encoding='utf-8')
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(app.config.get('LOG_FORMAT', 'text')))
    handler._booksansar = True

    # app.logger is the "app" package logger unless the import name changes
    loggers = {logging.getLogger('app'), app.logger}
    for logger in loggers:
        for old in [h for h in logger.handlers if getattr(h, '_booksansar', False)]:
            logger.removeHandler(old)
            old.close()
        logger.addHandler(handler)
        logger.setLevel(level)

    return handler
