"""Configuration package for the QR attendance backend."""
import os
from typing import Type

from .base import Config, DEFAULT_ADMIN_PASSWORD, DEFAULT_QR_SECRET
from .development import DevelopmentConfig
from .production import ProductionConfig
from .testing import TestingConfig

config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: str = None) -> Type[Config]:
    """Get configuration class based on environment."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    return config_map.get(config_name, config_map['default'])


__all__ = [
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig',
    'DEFAULT_ADMIN_PASSWORD', 'DEFAULT_QR_SECRET', 'config_map', 'get_config'
]
