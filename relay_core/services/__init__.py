"""
Relay core pass-through clients for the stateless upstream APIs
"""

from .cloudinary import ImageUploader
from .telegram import TelegramBot
