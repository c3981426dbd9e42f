from .cog import Announcements, setup

__all__ = ["Announcements", "setup"]
