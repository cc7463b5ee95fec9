from .reception import Base, Managers, RecurringTemplates, ReceptionSlots, metadata

__all__ = ["Base", "Managers", "RecurringTemplates", "ReceptionSlots", "metadata"]
