"""
cuentame-sync

Keeps the ¡Cuéntame! podcast episode index in sync with its RSS feed
without clobbering hand-curated show notes, translations or publish
status.
"""

__version__ = "0.1.0"
__author__ = "Cuéntame Team"

from cuentame_sync.config import Config

__all__ = ["Config", "__version__"]
