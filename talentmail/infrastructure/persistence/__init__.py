"""SQL persistence: engine/session, ORM models, repositories."""
