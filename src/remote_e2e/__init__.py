"""Client-side orchestration for remote, AI-driven end-to-end test runs."""

__version__ = "0.1.0"
