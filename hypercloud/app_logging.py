import logging
from pythonjsonlogger import jsonlogger

_HANDLER_NAME = 'hypercloud-json'


def setup_logger(level: str = 'INFO') -> None:
    """Install a JSON log handler on the root logger, once per process."""
    logger = logging.getLogger()
    logger.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return
    logHandler = logging.StreamHandler()
    logHandler.set_name(_HANDLER_NAME)
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s',
                                         rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
    logHandler.setFormatter(formatter)
    logger.addHandler(logHandler)
