from .redirect_capture import RedirectCaptureService

__all__ = ["RedirectCaptureService"]
