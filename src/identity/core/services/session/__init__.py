from .session_attributes import LOGIN_FLOW_TTL_SECONDS, SessionAttributeService

__all__ = ["LOGIN_FLOW_TTL_SECONDS", "SessionAttributeService"]
