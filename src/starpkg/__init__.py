"""starpkg - composable mod packages for Star Rod."""

__version__ = "0.1.0"
