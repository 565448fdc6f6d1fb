"""Persisted chat session repository."""

from localchat.sessions.repository import RepoResult, SessionRepository, export_filename

__all__ = ["RepoResult", "SessionRepository", "export_filename"]
