"""Domain entities."""

from attachkit.domain.entities.attachment import Attachment, LifecycleState

__all__ = ["Attachment", "LifecycleState"]
