"""Websocket change-subscription channel."""

from .manager import EventManager

__all__ = ["EventManager"]
