"""Extension modules imported by path in loader tests."""
