"""Shared slowapi limiter for routes that call the AI service."""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
