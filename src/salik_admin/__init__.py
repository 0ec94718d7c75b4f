"""Admin client for the MC Salik-Sik library system."""

__version__ = "0.1.0"
