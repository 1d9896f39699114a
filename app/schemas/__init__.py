# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .collection import *
from .item import *
from .shared_link import *
from .tag import *
from .user import *
