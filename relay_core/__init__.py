"""
Relay core: a thin REST gateway in front of GitHub, Telegram and Cloudinary
"""

__version__ = "0.1.0"
