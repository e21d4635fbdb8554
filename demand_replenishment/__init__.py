from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    ReplenishmentError, InsufficientDataError, InvalidValueError, InvalidParameterError,
    ProductNotFoundError, ComputationError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'ReplenishmentError',
    'InsufficientDataError',
    'InvalidValueError',
    'InvalidParameterError',
    'ProductNotFoundError',
    'ComputationError'
]
