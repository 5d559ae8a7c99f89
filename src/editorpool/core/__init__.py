"""Core domain, interfaces and errors."""
