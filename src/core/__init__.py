"""Core domain package for eventbell.

Core contains parsing, target resolution, the per-message pipeline and the
listener registry without any Kafka, Telegram or storage-specific code,
keeping the business logic portable.
"""
