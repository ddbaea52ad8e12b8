import logging
import logging.config
from pathlib import Path


def setup_logging(settings=None):
    """Применяет dictConfig из конфигурации и возвращает корневой логгер"""
    if settings is None:
        from config import config as settings

    if settings.log_to_file:
        Path(settings.log_dir).mkdir(exist_ok=True, parents=True)

    logging.config.dictConfig(settings.get_logging_config())
    return logging.getLogger()
