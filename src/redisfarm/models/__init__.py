"""Pydantic data models."""

from .base import FarmBaseModel
from .messages import ChannelMessage

__all__ = [
    "FarmBaseModel",
    "ChannelMessage",
]
