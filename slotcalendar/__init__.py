"""
slotcalendar - weekly recurring slots with per-date exceptions.
"""

__version__ = "0.1.0"
