"""Core building blocks: exceptions, settings, database base classes."""
