"""Use cases."""

from attachkit.application.use_cases.attachment_lifecycle import AttachmentLifecycle, LifecycleResult

__all__ = ["AttachmentLifecycle", "LifecycleResult"]
