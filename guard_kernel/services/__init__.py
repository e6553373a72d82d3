from guard_kernel.services.base import BaseService

__all__ = ["BaseService"]
