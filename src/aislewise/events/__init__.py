"""Change notification for Aislewise."""
from .bus import ChangeBus, ChangeListener
from .cache import ReadCache

__all__ = ['ChangeBus', 'ChangeListener', 'ReadCache']
