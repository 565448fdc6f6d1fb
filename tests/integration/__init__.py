"""Integration tests for components working together as a system.

Coverage:
    - Full send flow: repository, controller, client and decoder
    - Cancellation of an in-flight stream
    - Failure handling for HTTP and network errors

The completion server is replaced by an httpx.MockTransport handler that
streams real ``data:`` frames; everything else runs unmodified.
"""
