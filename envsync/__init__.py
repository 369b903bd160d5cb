"""envsync — converge a developer workstation to a declarative tool manifest."""

__version__ = "0.1.0"
