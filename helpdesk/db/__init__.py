from helpdesk.db.base import Base

__all__ = ["Base"]
