"""Reactive state primitives and token storage."""
