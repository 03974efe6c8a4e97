"""SQLAlchemy-backed branch index used by the persistence layer."""
