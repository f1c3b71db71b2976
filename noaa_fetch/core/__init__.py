"""Shared configuration, HTTP, caching and error types."""
