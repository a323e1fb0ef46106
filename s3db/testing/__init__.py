"""Test doubles for s3db backends."""

from s3db.testing.memory_backend import BackendOp, RecordingMemoryBackend, backend_failure

__all__ = ["BackendOp", "RecordingMemoryBackend", "backend_failure"]
