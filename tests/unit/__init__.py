"""Unit tests for individual components in isolation.

Coverage:
    - models/: Pydantic validation and camelCase serialization
    - storage/: Key/value stores and preferences
    - sessions/: Repository transitions, persistence, export and import
    - streaming/: Frame decoding, reasoning tracking and metrics
    - client/: Configuration and the completion server transport
    - parsing/: PDF and text attachments

No network access; the transport tests use httpx.MockTransport.
"""
