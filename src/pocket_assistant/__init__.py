"""
Pocket Assistant - voice command pipeline for a personal-assistant client.

Captures a spoken command, transcribes it, works out the intent, asks the
assistant backend for a reply and speaks it back.
"""

__version__ = "0.1.0"
