from .availability.pending_selection import PendingSelection
