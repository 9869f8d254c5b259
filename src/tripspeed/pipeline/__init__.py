from .session import SessionConfig, TrackingSession, select_candidate_speed

__all__ = ["SessionConfig", "TrackingSession", "select_candidate_speed"]
